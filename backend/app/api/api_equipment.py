# backend/app/api/api_equipment.py
# Asset inventory and kits (named bundles of assets assigned to gigs).

import logging
from datetime import datetime, timezone
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import ORJSONResponse
from sqlalchemy.orm import Session

from ..crud import crud_equipment, crud_gig
from ..database import get_db
from ..models import Asset, Kit, User
from ..schemas.equipment import (
    AssetCreate,
    AssetResponse,
    AssetUpdate,
    KitConflict,
    KitCreate,
    KitResponse,
    KitUpdate,
)
from ..utils import error_response
from .dependencies import get_current_active_user, require_manager, require_membership

assets_router = APIRouter(tags=["assets"], default_response_class=ORJSONResponse)
kits_router = APIRouter(tags=["kits"], default_response_class=ORJSONResponse)
logger = logging.getLogger(__name__)


def _asset_or_404(db: Session, asset_id: str) -> Asset:
    asset = crud_equipment.get_asset(db, asset_id)
    if asset is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Asset not found")
    return asset


def _kit_or_404(db: Session, kit_id: str) -> Kit:
    kit = crud_equipment.get_kit(db, kit_id)
    if kit is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Kit not found")
    return kit


# ─── Assets ────────────────────────────────────────────────────────────────────


@assets_router.get("", response_model=List[AssetResponse])
def list_assets(
    organization_id: str = Query(...),
    category: Optional[str] = Query(None),
    sub_category: Optional[str] = Query(None),
    insurance_added: Optional[bool] = Query(None),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    require_membership(db, organization_id, current_user)
    return crud_equipment.list_assets(db, organization_id, category, sub_category, insurance_added, search)


@assets_router.post("", response_model=AssetResponse, status_code=status.HTTP_201_CREATED)
def create_asset(
    asset_in: AssetCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    require_manager(db, asset_in.organization_id, current_user)
    return crud_equipment.create_asset(db, asset_in, current_user.id)


@assets_router.get("/{asset_id}", response_model=AssetResponse)
def read_asset(
    asset_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    asset = _asset_or_404(db, asset_id)
    require_membership(db, asset.organization_id, current_user)
    return asset


@assets_router.put("/{asset_id}", response_model=AssetResponse)
def update_asset(
    asset_id: str,
    asset_in: AssetUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    asset = _asset_or_404(db, asset_id)
    require_manager(db, asset.organization_id, current_user)
    return crud_equipment.update_asset(db, asset, asset_in, current_user.id)


@assets_router.delete("/{asset_id}")
def delete_asset(
    asset_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    asset = _asset_or_404(db, asset_id)
    require_manager(db, asset.organization_id, current_user)
    crud_equipment.delete_asset(db, asset)
    return {"success": True}


# ─── Kits ──────────────────────────────────────────────────────────────────────


@kits_router.get("", response_model=List[KitResponse])
def list_kits(
    organization_id: str = Query(...),
    category: Optional[str] = Query(None),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    require_membership(db, organization_id, current_user)
    return crud_equipment.list_kits(db, organization_id, category, search)


@kits_router.post("", response_model=KitResponse, status_code=status.HTTP_201_CREATED)
def create_kit(
    kit_in: KitCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    require_manager(db, kit_in.organization_id, current_user)
    try:
        return crud_equipment.create_kit(db, kit_in, current_user.id)
    except ValueError as exc:
        raise error_response(str(exc), {"assets": str(exc)}, status.HTTP_400_BAD_REQUEST)


@kits_router.get("/{kit_id}", response_model=KitResponse)
def read_kit(
    kit_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    kit = _kit_or_404(db, kit_id)
    require_membership(db, kit.organization_id, current_user)
    return kit


@kits_router.put("/{kit_id}", response_model=KitResponse)
def update_kit(
    kit_id: str,
    kit_in: KitUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    kit = _kit_or_404(db, kit_id)
    require_manager(db, kit.organization_id, current_user)
    try:
        return crud_equipment.update_kit(db, kit, kit_in, current_user.id)
    except ValueError as exc:
        db.rollback()
        raise error_response(str(exc), {"assets": str(exc)}, status.HTTP_400_BAD_REQUEST)


@kits_router.delete("/{kit_id}")
def delete_kit(
    kit_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    kit = _kit_or_404(db, kit_id)
    require_manager(db, kit.organization_id, current_user)
    crud_equipment.delete_kit(db, kit)
    return {"success": True}


@kits_router.post("/{kit_id}/duplicate", response_model=KitResponse, status_code=status.HTTP_201_CREATED)
def duplicate_kit(
    kit_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    kit = _kit_or_404(db, kit_id)
    require_manager(db, kit.organization_id, current_user)
    return crud_equipment.duplicate_kit(db, kit, current_user.id)


@kits_router.get("/{kit_id}/conflicts", response_model=List[KitConflict])
def kit_conflicts(
    kit_id: str,
    gig_id: Optional[str] = Query(None),
    start: Optional[datetime] = Query(None),
    end: Optional[datetime] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """Other gigs in the window that already use one of this kit's assets.

    ``start``/``end`` default to the times of ``gig_id``.
    """
    kit = _kit_or_404(db, kit_id)
    require_membership(db, kit.organization_id, current_user)
    if gig_id and (start is None or end is None):
        gig = crud_gig.get_gig(db, gig_id)
        if gig is None:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Gig not found")
        start = start or gig.start
        end = end or gig.end
    if start is None or end is None:
        raise error_response(
            "start and end are required without gig_id",
            {"start": "required", "end": "required"},
            status.HTTP_400_BAD_REQUEST,
        )
    # Naive query times are taken as UTC.
    start = start if start.tzinfo else start.replace(tzinfo=timezone.utc)
    end = end if end.tzinfo else end.replace(tzinfo=timezone.utc)
    if end <= start:
        raise error_response(
            "End time must be after start time",
            {"end": "End time must be after start time"},
            status.HTTP_400_BAD_REQUEST,
        )
    return crud_equipment.kit_conflicts(db, kit, start, end, exclude_gig_id=gig_id)
