# backend/app/models/user.py

from sqlalchemy import Column, String
from sqlalchemy.orm import relationship
from .base import BaseModel
from .types import enum_column, new_uuid
import enum


class UserStatus(str, enum.Enum):
    """Account state. ``pending`` users were created by an invitation and
    have not signed in yet."""

    ACTIVE = "active"
    PENDING = "pending"
    INACTIVE = "inactive"


class User(BaseModel):
    __tablename__ = "users"

    id            = Column(String(36), primary_key=True, default=new_uuid)
    email         = Column(String, unique=True, index=True, nullable=False)
    first_name    = Column(String, nullable=False, default="")
    last_name     = Column(String, nullable=False, default="")
    phone         = Column(String, nullable=True)
    avatar_url    = Column(String, nullable=True)
    address_line1 = Column(String, nullable=True)
    address_line2 = Column(String, nullable=True)
    city          = Column(String, nullable=True)
    state         = Column(String, nullable=True)
    postal_code   = Column(String, nullable=True)
    country       = Column(String, nullable=True)
    role_hint     = Column(String, nullable=True)
    user_status   = Column(
        enum_column(UserStatus, "user_status"),
        nullable=False,
        default=UserStatus.ACTIVE,
        index=True,
    )

    memberships = relationship(
        "OrganizationMember",
        back_populates="user",
        cascade="all, delete-orphan",
    )

    @property
    def full_name(self) -> str:
        return f"{self.first_name or ''} {self.last_name or ''}".strip()
