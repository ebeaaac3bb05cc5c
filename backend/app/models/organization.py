import enum

from sqlalchemy import Column, ForeignKey, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import BaseModel
from .types import enum_column, new_uuid


class OrganizationType(str, enum.Enum):
    """Organization kinds. Also used as the participant role on a gig."""

    PRODUCTION = "Production"
    SOUND = "Sound"
    LIGHTING = "Lighting"
    STAGING = "Staging"
    RENTALS = "Rentals"
    VENUE = "Venue"
    ACT = "Act"
    AGENCY = "Agency"


class MemberRole(str, enum.Enum):
    ADMIN = "Admin"
    MANAGER = "Manager"
    STAFF = "Staff"
    VIEWER = "Viewer"


# Roles allowed to create and edit gigs, bids, staffing and invitations.
MANAGING_ROLES = (MemberRole.ADMIN, MemberRole.MANAGER)


class Organization(BaseModel):
    __tablename__ = "organizations"

    id              = Column(String(36), primary_key=True, default=new_uuid)
    name            = Column(String, nullable=False, index=True)
    type            = Column(enum_column(OrganizationType, "organization_type"), nullable=False, index=True)
    url             = Column(String, nullable=True)
    phone_number    = Column(String, nullable=True)
    email           = Column(String, nullable=True)
    address_line1   = Column(String, nullable=True)
    address_line2   = Column(String, nullable=True)
    city            = Column(String, nullable=True)
    state           = Column(String, nullable=True)
    postal_code     = Column(String, nullable=True)
    country         = Column(String, nullable=True)
    description     = Column(Text, nullable=True)
    allowed_domains = Column(String, nullable=True)
    place_id        = Column(String, nullable=True)

    members = relationship(
        "OrganizationMember",
        back_populates="organization",
        cascade="all, delete-orphan",
    )


class OrganizationMember(BaseModel):
    __tablename__ = "organization_members"
    __table_args__ = (
        UniqueConstraint("organization_id", "user_id", name="uq_org_member"),
    )

    id                    = Column(String(36), primary_key=True, default=new_uuid)
    organization_id       = Column(String(36), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id               = Column(String(36), ForeignKey("users.id", ondelete="CASCADE", onupdate="CASCADE"), nullable=False, index=True)
    role                  = Column(enum_column(MemberRole, "user_role"), nullable=False)
    default_staff_role_id = Column(String(36), ForeignKey("staff_roles.id", ondelete="SET NULL"), nullable=True)

    organization       = relationship("Organization", back_populates="members")
    user               = relationship("User", back_populates="memberships")
    default_staff_role = relationship("StaffRole")
