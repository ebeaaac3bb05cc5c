from sqlalchemy import Boolean, Column, Date, ForeignKey, Integer, Numeric, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import BaseModel
from .types import StringList, UTCDateTime, new_uuid, utcnow


class Asset(BaseModel):
    __tablename__ = "assets"

    id                     = Column(String(36), primary_key=True, default=new_uuid)
    organization_id        = Column(String(36), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    category               = Column(String, nullable=False)
    sub_category           = Column(String, nullable=True)
    manufacturer_model     = Column(String, nullable=False)
    type                   = Column(String, nullable=True)
    serial_number          = Column(String, nullable=True)
    description            = Column(Text, nullable=True)
    acquisition_date       = Column(Date, nullable=True)
    vendor                 = Column(String, nullable=True)
    cost                   = Column(Numeric(10, 2), nullable=True)
    replacement_value      = Column(Numeric(10, 2), nullable=True)
    insurance_policy_added = Column(Boolean, nullable=False, default=False)
    created_by             = Column(String(36), ForeignKey("users.id"), nullable=False)
    updated_by             = Column(String(36), ForeignKey("users.id"), nullable=False)


class Kit(BaseModel):
    """A named, reusable bundle of assets."""

    __tablename__ = "kits"

    id              = Column(String(36), primary_key=True, default=new_uuid)
    organization_id = Column(String(36), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    name            = Column(String, nullable=False)
    category        = Column(String, nullable=True, index=True)
    description     = Column(Text, nullable=True)
    tags            = Column(StringList, nullable=False, default=list)
    created_by      = Column(String(36), ForeignKey("users.id"), nullable=False)
    updated_by      = Column(String(36), ForeignKey("users.id"), nullable=False)

    kit_assets = relationship("KitAsset", back_populates="kit", cascade="all, delete-orphan")


class KitAsset(BaseModel):
    __tablename__ = "kit_assets"
    __table_args__ = (UniqueConstraint("kit_id", "asset_id", name="uq_kit_asset"),)

    id       = Column(String(36), primary_key=True, default=new_uuid)
    kit_id   = Column(String(36), ForeignKey("kits.id", ondelete="CASCADE"), nullable=False, index=True)
    asset_id = Column(String(36), ForeignKey("assets.id", ondelete="CASCADE"), nullable=False, index=True)
    quantity = Column(Integer, nullable=False, default=1)
    notes    = Column(Text, nullable=True)

    kit   = relationship("Kit", back_populates="kit_assets")
    asset = relationship("Asset")


class GigKitAssignment(BaseModel):
    __tablename__ = "gig_kit_assignments"
    __table_args__ = (UniqueConstraint("gig_id", "kit_id", name="uq_gig_kit"),)

    id              = Column(String(36), primary_key=True, default=new_uuid)
    organization_id = Column(String(36), ForeignKey("organizations.id", ondelete="CASCADE"), nullable=False, index=True)
    gig_id          = Column(String(36), ForeignKey("gigs.id", ondelete="CASCADE"), nullable=False, index=True)
    kit_id          = Column(String(36), ForeignKey("kits.id", ondelete="CASCADE"), nullable=False, index=True)
    notes           = Column(Text, nullable=True)
    assigned_by     = Column(String(36), ForeignKey("users.id"), nullable=False)
    assigned_at     = Column(UTCDateTime, nullable=False, default=utcnow)

    gig = relationship("Gig", back_populates="kit_assignments")
    kit = relationship("Kit")
