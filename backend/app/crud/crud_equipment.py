"""Assets, kits and the conflict check used when a kit is put on a gig."""

import logging
from datetime import datetime
from typing import Dict, List, Optional, Sequence

from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from .. import models, schemas
from ..services.identity import Persisted, WriteSet, tag

logger = logging.getLogger(__name__)


# ─── Assets ────────────────────────────────────────────────────────────────────


def list_assets(
    db: Session,
    organization_id: str,
    category: Optional[str] = None,
    sub_category: Optional[str] = None,
    insurance_added: Optional[bool] = None,
    search: Optional[str] = None,
) -> List[models.Asset]:
    query = db.query(models.Asset).filter(models.Asset.organization_id == organization_id)
    if category:
        query = query.filter(models.Asset.category == category)
    if sub_category:
        query = query.filter(models.Asset.sub_category == sub_category)
    if insurance_added is not None:
        query = query.filter(models.Asset.insurance_policy_added == insurance_added)
    if search and search.strip():
        term = f"%{search.strip()}%"
        query = query.filter(
            or_(
                models.Asset.manufacturer_model.ilike(term),
                models.Asset.serial_number.ilike(term),
                models.Asset.description.ilike(term),
            )
        )
    return query.order_by(models.Asset.category, models.Asset.manufacturer_model).all()


def get_asset(db: Session, asset_id: str) -> Optional[models.Asset]:
    return db.query(models.Asset).filter(models.Asset.id == asset_id).first()


def create_asset(db: Session, asset_in: schemas.AssetCreate, actor_id: str) -> models.Asset:
    asset = models.Asset(**asset_in.model_dump(), created_by=actor_id, updated_by=actor_id)
    db.add(asset)
    db.commit()
    db.refresh(asset)
    return asset


def update_asset(db: Session, asset: models.Asset, asset_in: schemas.AssetUpdate, actor_id: str) -> models.Asset:
    for field, value in asset_in.model_dump(exclude_unset=True).items():
        if field in ("category", "manufacturer_model", "insurance_policy_added") and value is None:
            continue
        setattr(asset, field, value)
    asset.updated_by = actor_id
    db.commit()
    db.refresh(asset)
    return asset


def delete_asset(db: Session, asset: models.Asset) -> None:
    db.delete(asset)
    db.commit()


# ─── Kits ──────────────────────────────────────────────────────────────────────


def list_kits(
    db: Session,
    organization_id: str,
    category: Optional[str] = None,
    search: Optional[str] = None,
) -> List[models.Kit]:
    query = (
        db.query(models.Kit)
        .options(selectinload(models.Kit.kit_assets).selectinload(models.KitAsset.asset))
        .filter(models.Kit.organization_id == organization_id)
    )
    if category:
        query = query.filter(models.Kit.category == category)
    if search and search.strip():
        query = query.filter(models.Kit.name.ilike(f"%{search.strip()}%"))
    return query.order_by(models.Kit.name).all()


def get_kit(db: Session, kit_id: str) -> Optional[models.Kit]:
    return (
        db.query(models.Kit)
        .options(selectinload(models.Kit.kit_assets).selectinload(models.KitAsset.asset))
        .filter(models.Kit.id == kit_id)
        .first()
    )


def _check_assets(db: Session, organization_id: str, rows: Sequence[schemas.KitAssetIn]) -> None:
    asset_ids = {row.asset_id for row in rows}
    if not asset_ids:
        return
    found = {
        a[0]
        for a in db.query(models.Asset.id)
        .filter(models.Asset.id.in_(asset_ids), models.Asset.organization_id == organization_id)
        .all()
    }
    missing = asset_ids - found
    if missing:
        raise ValueError(f"Unknown asset(s) for this organization: {', '.join(sorted(missing))}")


def plan_kit_assets(
    rows: Sequence[schemas.KitAssetIn], existing: Sequence[models.KitAsset]
) -> WriteSet[schemas.KitAssetIn]:
    """Diff submitted kit contents against the saved rows.

    A kit holds each asset once; later rows for an asset already listed are
    ignored.
    """
    writes: WriteSet[schemas.KitAssetIn] = WriteSet()
    owned = {row.id for row in existing}
    kept: set = set()
    seen_assets: set = set()
    for row in rows:
        if row.asset_id in seen_assets:
            continue
        seen_assets.add(row.asset_id)
        key = tag(row.id)
        if isinstance(key, Persisted) and key.id in owned and key.id not in kept:
            kept.add(key.id)
            writes.updates.append(row)
        else:
            writes.inserts.append(row)
    writes.deletes = [row.id for row in existing if row.id not in kept]
    return writes


def create_kit(db: Session, kit_in: schemas.KitCreate, actor_id: str) -> models.Kit:
    _check_assets(db, kit_in.organization_id, kit_in.assets)
    kit = models.Kit(
        organization_id=kit_in.organization_id,
        name=kit_in.name,
        category=kit_in.category,
        description=kit_in.description,
        tags=kit_in.tags,
        created_by=actor_id,
        updated_by=actor_id,
    )
    db.add(kit)
    db.flush()
    for row in plan_kit_assets(kit_in.assets, []).inserts:
        db.add(models.KitAsset(kit_id=kit.id, asset_id=row.asset_id, quantity=row.quantity, notes=row.notes))
    db.commit()
    return get_kit(db, kit.id)


def update_kit(db: Session, kit: models.Kit, kit_in: schemas.KitUpdate, actor_id: str) -> models.Kit:
    data = kit_in.model_dump(exclude_unset=True, exclude={"assets"})
    for field, value in data.items():
        if field in ("name", "tags") and value is None:
            continue
        setattr(kit, field, value)
    kit.updated_by = actor_id

    if kit_in.assets is not None:
        _check_assets(db, kit.organization_id, kit_in.assets)
        writes = plan_kit_assets(kit_in.assets, list(kit.kit_assets))
        by_id: Dict[str, models.KitAsset] = {row.id: row for row in kit.kit_assets}
        for row_id in writes.deletes:
            kit.kit_assets.remove(by_id[row_id])
        # Deletes go first so a re-added asset does not trip the (kit, asset) constraint.
        db.flush()
        for row in writes.updates:
            saved = by_id[tag(row.id).id]
            saved.asset_id = row.asset_id
            saved.quantity = row.quantity
            saved.notes = row.notes
        db.flush()
        for row in writes.inserts:
            kit.kit_assets.append(
                models.KitAsset(asset_id=row.asset_id, quantity=row.quantity, notes=row.notes)
            )
    db.commit()
    db.expire_all()
    return get_kit(db, kit.id)


def delete_kit(db: Session, kit: models.Kit) -> None:
    db.delete(kit)
    db.commit()


def duplicate_kit(db: Session, kit: models.Kit, actor_id: str) -> models.Kit:
    copy = models.Kit(
        organization_id=kit.organization_id,
        name=f"{kit.name} (Copy)",
        category=kit.category,
        description=kit.description,
        tags=list(kit.tags or []),
        created_by=actor_id,
        updated_by=actor_id,
    )
    db.add(copy)
    db.flush()
    for row in kit.kit_assets:
        db.add(models.KitAsset(kit_id=copy.id, asset_id=row.asset_id, quantity=row.quantity, notes=row.notes))
    db.commit()
    logger.info("Duplicated kit %s as %s", kit.id, copy.id)
    return get_kit(db, copy.id)


def kit_conflicts(
    db: Session,
    kit: models.Kit,
    start: datetime,
    end: datetime,
    exclude_gig_id: Optional[str] = None,
) -> List[dict]:
    """Other gigs overlapping ``[start, end)`` that use any asset of ``kit``."""
    asset_ids = {row.asset_id for row in kit.kit_assets}
    if not asset_ids:
        return []
    query = (
        db.query(models.GigKitAssignment, models.Gig)
        .join(models.Gig, models.Gig.id == models.GigKitAssignment.gig_id)
        .options(selectinload(models.GigKitAssignment.kit).selectinload(models.Kit.kit_assets))
        .filter(models.Gig.start < end, models.Gig.end > start)
    )
    if exclude_gig_id:
        query = query.filter(models.Gig.id != exclude_gig_id)

    conflicts: List[dict] = []
    for assignment, gig in query.order_by(models.Gig.start).all():
        shared = sorted(asset_ids & {row.asset_id for row in assignment.kit.kit_assets})
        if not shared:
            continue
        conflicts.append(
            {
                "gig_id": gig.id,
                "title": gig.title,
                "start": gig.start,
                "end": gig.end,
                "kit_id": assignment.kit_id,
                "kit_name": assignment.kit.name,
                "asset_ids": shared,
            }
        )
    return conflicts
