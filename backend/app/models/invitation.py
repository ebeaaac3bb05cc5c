import enum

from sqlalchemy import Column, ForeignKey, String
from sqlalchemy.orm import relationship

from .base import BaseModel
from .organization import MemberRole
from .types import UTCDateTime, enum_column, new_uuid


class InvitationStatus(str, enum.Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class Invitation(BaseModel):
    __tablename__ = "invitations"

    id              = Column(String(36), primary_key=True, default=new_uuid)
    organization_id = Column(String(36), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    email           = Column(String, nullable=False, index=True)
    role            = Column(enum_column(MemberRole, "user_role"), nullable=False)
    invited_by      = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    status          = Column(enum_column(InvitationStatus, "invitation_status"), nullable=False, default=InvitationStatus.PENDING, index=True)
    token           = Column(String, unique=True, nullable=False, index=True)
    expires_at      = Column(UTCDateTime, nullable=False)
    accepted_at     = Column(UTCDateTime, nullable=True)
    accepted_by     = Column(String(36), ForeignKey("users.id", ondelete="SET NULL"), nullable=True)

    organization = relationship("Organization")
    inviter      = relationship("User", foreign_keys=[invited_by])
