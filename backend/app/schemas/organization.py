from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

from ..models import InvitationStatus, MemberRole, OrganizationType
from .user import UserSummary


class OrganizationBase(BaseModel):
    name: str = Field(..., min_length=1)
    type: OrganizationType
    url: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    description: Optional[str] = None
    allowed_domains: Optional[str] = None
    place_id: Optional[str] = None

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("Organization name is required")
        return v.strip()


class OrganizationCreate(OrganizationBase):
    pass


class OrganizationUpdate(BaseModel):
    name: Optional[str] = None
    type: Optional[OrganizationType] = None
    url: Optional[str] = None
    phone_number: Optional[str] = None
    email: Optional[str] = None
    address_line1: Optional[str] = None
    address_line2: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    description: Optional[str] = None
    allowed_domains: Optional[str] = None
    place_id: Optional[str] = None


class OrganizationResponse(OrganizationBase):
    id: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class MemberResponse(BaseModel):
    id: str
    organization_id: str
    user_id: str
    role: MemberRole
    default_staff_role_id: Optional[str] = None
    user: Optional[UserSummary] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class MemberUpdate(BaseModel):
    role: Optional[MemberRole] = None
    # Staff role name; created on first use like the ones on staff slots.
    default_staff_role: Optional[str] = None


class InvitationCreate(BaseModel):
    email: EmailStr
    role: MemberRole = MemberRole.STAFF
    first_name: Optional[str] = None
    last_name: Optional[str] = None


class InvitationResponse(BaseModel):
    id: str
    organization_id: str
    email: str
    role: MemberRole
    status: InvitationStatus
    invited_by: str
    token: str
    expires_at: datetime
    accepted_at: Optional[datetime] = None
    created_at: datetime

    model_config = {"from_attributes": True}
