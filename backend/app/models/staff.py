import enum

from sqlalchemy import Column, ForeignKey, Integer, Numeric, String, Text
from sqlalchemy.orm import relationship

from .base import BaseModel
from .types import UTCDateTime, enum_column, new_uuid, utcnow


class AssignmentStatus(str, enum.Enum):
    REQUESTED = "Requested"
    CONFIRMED = "Confirmed"
    DECLINED = "Declined"


class StaffRole(BaseModel):
    __tablename__ = "staff_roles"

    id          = Column(String(36), primary_key=True, default=new_uuid)
    name        = Column(String, unique=True, nullable=False)
    description = Column(Text, nullable=True)


class GigStaffSlot(BaseModel):
    __tablename__ = "gig_staff_slots"

    id              = Column(String(36), primary_key=True, default=new_uuid)
    gig_id          = Column(String(36), ForeignKey("gigs.id", ondelete="CASCADE"), nullable=False, index=True)
    organization_id = Column(String(36), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=True, index=True)
    staff_role_id   = Column(String(36), ForeignKey("staff_roles.id", ondelete="RESTRICT"), nullable=False)
    required_count  = Column(Integer, nullable=False, default=1)
    notes           = Column(Text, nullable=True)

    gig         = relationship("Gig", back_populates="staff_slots")
    staff_role  = relationship("StaffRole")
    assignments = relationship(
        "GigStaffAssignment",
        back_populates="slot",
        cascade="all, delete-orphan",
        order_by="GigStaffAssignment.assigned_at",
    )


class GigStaffAssignment(BaseModel):
    __tablename__ = "gig_staff_assignments"

    id           = Column(String(36), primary_key=True, default=new_uuid)
    slot_id      = Column(String(36), ForeignKey("gig_staff_slots.id", ondelete="CASCADE"), nullable=False, index=True)
    user_id      = Column(String(36), ForeignKey("users.id", ondelete="CASCADE", onupdate="CASCADE"), nullable=False, index=True)
    status       = Column(enum_column(AssignmentStatus, "assignment_status"), nullable=False, default=AssignmentStatus.REQUESTED)
    # Exactly one of rate/fee is set (or neither when no amount was given).
    rate         = Column(Numeric(10, 2), nullable=True)
    fee          = Column(Numeric(10, 2), nullable=True)
    notes        = Column(Text, nullable=True)
    assigned_at  = Column(UTCDateTime, nullable=False, default=utcnow)
    confirmed_at = Column(UTCDateTime, nullable=True)

    slot = relationship("GigStaffSlot", back_populates="assignments")
    user = relationship("User")
