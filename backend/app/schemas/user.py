# backend/app/schemas/user.py

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr

from ..models import MemberRole, OrganizationType, UserStatus


class UserBase(BaseModel):
    email: EmailStr
    first_name: str = ""
    last_name: str = ""
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    role_hint: Optional[str] = None


class UserCreate(UserBase):
    pass


# Properties a user may change on their own profile
class UserUpdate(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    phone: Optional[str] = None
    avatar_url: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    role_hint: Optional[str] = None


class UserResponse(UserBase):
    id: str
    user_status: UserStatus
    created_at: datetime
    updated_at: datetime

    model_config = {
        "from_attributes": True
    }


class UserSummary(BaseModel):
    id: str
    email: str
    first_name: str
    last_name: str
    avatar_url: Optional[str] = None

    model_config = {"from_attributes": True}


class UserOrganizationResponse(BaseModel):
    """One of the user's memberships, as shown in the organization switcher."""

    organization_id: str
    name: str
    type: OrganizationType
    role: MemberRole
    default_staff_role_id: Optional[str] = None


# TokenData for extracting “sub” (user id) from JWT
class TokenData(BaseModel):
    user_id: Optional[str] = None
