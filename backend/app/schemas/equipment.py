from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class AssetBase(BaseModel):
    category: str = Field(..., min_length=1)
    sub_category: Optional[str] = None
    manufacturer_model: str = Field(..., min_length=1)
    type: Optional[str] = None
    serial_number: Optional[str] = None
    description: Optional[str] = None
    acquisition_date: Optional[date] = None
    vendor: Optional[str] = None
    cost: Optional[Decimal] = Field(None, ge=0)
    replacement_value: Optional[Decimal] = Field(None, ge=0)
    insurance_policy_added: bool = False


class AssetCreate(AssetBase):
    organization_id: str


class AssetUpdate(BaseModel):
    category: Optional[str] = None
    sub_category: Optional[str] = None
    manufacturer_model: Optional[str] = None
    type: Optional[str] = None
    serial_number: Optional[str] = None
    description: Optional[str] = None
    acquisition_date: Optional[date] = None
    vendor: Optional[str] = None
    cost: Optional[Decimal] = Field(None, ge=0)
    replacement_value: Optional[Decimal] = Field(None, ge=0)
    insurance_policy_added: Optional[bool] = None


class AssetResponse(AssetBase):
    id: str
    organization_id: str
    created_by: str
    updated_by: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class KitAssetIn(BaseModel):
    # Saved kit_assets row id when editing, anything else for a new row.
    id: Optional[str] = None
    asset_id: str
    quantity: int = Field(1, ge=1)
    notes: Optional[str] = None


class KitAssetResponse(BaseModel):
    id: str
    asset_id: str
    quantity: int
    notes: Optional[str] = None
    asset: Optional[AssetResponse] = None

    model_config = {"from_attributes": True}


class KitCreate(BaseModel):
    organization_id: str
    name: str = Field(..., min_length=1)
    category: Optional[str] = None
    description: Optional[str] = None
    tags: List[str] = []
    assets: List[KitAssetIn] = []


class KitUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1)
    category: Optional[str] = None
    description: Optional[str] = None
    tags: Optional[List[str]] = None
    # Omitted: contents unchanged. Given: the full new list.
    assets: Optional[List[KitAssetIn]] = None


class KitResponse(BaseModel):
    id: str
    organization_id: str
    name: str
    category: Optional[str] = None
    description: Optional[str] = None
    tags: List[str] = []
    created_by: str
    updated_by: str
    created_at: datetime
    updated_at: datetime
    kit_assets: List[KitAssetResponse] = []

    model_config = {"from_attributes": True}


class KitConflict(BaseModel):
    gig_id: str
    title: str
    start: datetime
    end: datetime
    kit_id: str
    kit_name: str
    asset_ids: List[str]


class GigKitAssignmentCreate(BaseModel):
    kit_id: str
    organization_id: Optional[str] = None
    notes: Optional[str] = None
