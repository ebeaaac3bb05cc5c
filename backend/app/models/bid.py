import enum

from sqlalchemy import Column, Date, ForeignKey, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import BaseModel
from .types import enum_column, new_uuid


class BidResult(str, enum.Enum):
    ACCEPTED = "Accepted"
    REJECTED = "Rejected"
    PENDING = "Pending"


class GigBid(BaseModel):
    """A bid an organization gave for a gig. Never shared across organizations."""

    __tablename__ = "gig_bids"
    __table_args__ = (
        UniqueConstraint("gig_id", "organization_id", "client_token", name="uq_gig_bid_client_token"),
    )

    id              = Column(String(36), primary_key=True, default=new_uuid)
    gig_id          = Column(String(36), ForeignKey("gigs.id", ondelete="CASCADE"), nullable=False, index=True)
    organization_id = Column(String(36), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    date_given      = Column(Date, nullable=False)
    amount          = Column(Numeric(10, 2), nullable=False)
    result          = Column(enum_column(BidResult, "bid_result"), nullable=True)
    notes           = Column(Text, nullable=True)
    # Token minted by the form for a not-yet-saved row; resubmitting the same
    # token updates the row instead of inserting a duplicate.
    client_token    = Column(String(64), nullable=True)
    created_by      = Column(String(36), ForeignKey("users.id"), nullable=False)

    gig = relationship("Gig", back_populates="bids")
