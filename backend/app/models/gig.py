# backend/app/models/gig.py

import enum

from sqlalchemy import Column, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from .base import BaseModel
from .organization import OrganizationType
from .types import StringList, UTCDateTime, enum_column, new_uuid, utcnow


class GigStatus(str, enum.Enum):
    """Gig lifecycle labels. No transition rules are enforced."""

    DATE_HOLD = "DateHold"
    PROPOSED = "Proposed"
    BOOKED = "Booked"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    SETTLED = "Settled"


class Gig(BaseModel):
    __tablename__ = "gigs"

    id              = Column(String(36), primary_key=True, default=new_uuid)
    organization_id = Column(String(36), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    title           = Column(String(200), nullable=False)
    status          = Column(enum_column(GigStatus, "gig_status"), nullable=False, default=GigStatus.DATE_HOLD, index=True)
    tags            = Column(StringList, nullable=False, default=list)
    start           = Column(UTCDateTime, nullable=False, index=True)
    end             = Column(UTCDateTime, nullable=False)
    timezone        = Column(String, nullable=False)
    amount_paid     = Column(Numeric(10, 2), nullable=True)
    notes           = Column(Text, nullable=True)
    parent_gig_id   = Column(String(36), ForeignKey("gigs.id", ondelete="CASCADE"), nullable=True, index=True)
    hierarchy_depth = Column(Integer, nullable=False, default=0)
    created_by      = Column(String(36), ForeignKey("users.id"), nullable=False)
    updated_by      = Column(String(36), ForeignKey("users.id"), nullable=False)

    organization    = relationship("Organization")
    participants    = relationship(
        "GigParticipant",
        back_populates="gig",
        cascade="all, delete-orphan",
        order_by="GigParticipant.created_at",
    )
    staff_slots     = relationship(
        "GigStaffSlot",
        back_populates="gig",
        cascade="all, delete-orphan",
        order_by="GigStaffSlot.created_at",
    )
    bids            = relationship("GigBid", back_populates="gig", cascade="all, delete-orphan")
    kit_assignments = relationship("GigKitAssignment", back_populates="gig", cascade="all, delete-orphan")
    status_history  = relationship(
        "GigStatusHistory",
        back_populates="gig",
        cascade="all, delete-orphan",
        order_by="GigStatusHistory.changed_at",
    )


class GigParticipant(BaseModel):
    __tablename__ = "gig_participants"

    id              = Column(String(36), primary_key=True, default=new_uuid)
    gig_id          = Column(String(36), ForeignKey("gigs.id", ondelete="CASCADE"), nullable=False, index=True)
    organization_id = Column(String(36), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    role            = Column(enum_column(OrganizationType, "organization_type"), nullable=False)
    notes           = Column(Text, nullable=True)

    gig          = relationship("Gig", back_populates="participants")
    organization = relationship("Organization")


class GigStatusHistory(BaseModel):
    __tablename__ = "gig_status_history"

    id          = Column(String(36), primary_key=True, default=new_uuid)
    gig_id      = Column(String(36), ForeignKey("gigs.id", ondelete="CASCADE"), nullable=False, index=True)
    from_status = Column(enum_column(GigStatus, "gig_status"), nullable=True)
    to_status   = Column(enum_column(GigStatus, "gig_status"), nullable=False)
    changed_by  = Column(String(36), nullable=True)
    changed_at  = Column(UTCDateTime, nullable=False, default=utcnow)

    gig = relationship("Gig", back_populates="status_history")
