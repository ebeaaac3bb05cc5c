import logging
from typing import List, Optional, Set

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, selectinload

from .. import models, schemas
from ..models.types import utcnow
from ..schemas.gig import END_BEFORE_START_ERROR, localize_datetime
from ..services.errors import GigValidationError

logger = logging.getLogger(__name__)


def get_gig(db: Session, gig_id: str) -> Optional[models.Gig]:
    return (
        db.query(models.Gig)
        .options(
            selectinload(models.Gig.participants).joinedload(models.GigParticipant.organization),
        )
        .filter(models.Gig.id == gig_id)
        .first()
    )


def participating_organization_ids(gig: models.Gig) -> Set[str]:
    ids = {p.organization_id for p in gig.participants}
    ids.add(gig.organization_id)
    return ids


def list_gigs_for_organization(db: Session, organization_id: str) -> List[models.Gig]:
    """Gigs the organization owns or participates in, newest start first."""
    participating = db.query(models.GigParticipant.gig_id).filter(
        models.GigParticipant.organization_id == organization_id
    )
    return (
        db.query(models.Gig)
        .options(
            selectinload(models.Gig.participants).joinedload(models.GigParticipant.organization),
        )
        .filter(or_(models.Gig.organization_id == organization_id, models.Gig.id.in_(participating)))
        .order_by(models.Gig.start.desc())
        .all()
    )


def staff_slots_for(db: Session, gig_id: str, organization_id: str) -> List[models.GigStaffSlot]:
    return (
        db.query(models.GigStaffSlot)
        .options(
            selectinload(models.GigStaffSlot.assignments),
            selectinload(models.GigStaffSlot.staff_role),
        )
        .filter(
            models.GigStaffSlot.gig_id == gig_id,
            models.GigStaffSlot.organization_id == organization_id,
        )
        .order_by(models.GigStaffSlot.created_at)
        .all()
    )


def bids_for(db: Session, gig_id: str, organization_id: str) -> List[models.GigBid]:
    return (
        db.query(models.GigBid)
        .filter(models.GigBid.gig_id == gig_id, models.GigBid.organization_id == organization_id)
        .order_by(models.GigBid.date_given, models.GigBid.created_at)
        .all()
    )


def patch_gig(db: Session, gig: models.Gig, patch: schemas.GigPatch, actor_id: str) -> models.Gig:
    data = patch.model_dump(exclude_unset=True)
    for field in ("title", "status", "timezone", "start", "end"):
        if field in data and data[field] is None:
            raise GigValidationError(f"{field} cannot be empty", {field: "required"})

    tz_name = data.get("timezone") or gig.timezone
    if "start" in data:
        data["start"] = localize_datetime(data["start"], tz_name)
    if "end" in data:
        data["end"] = localize_datetime(data["end"], tz_name)
    start = data.get("start", gig.start)
    end = data.get("end", gig.end)
    if end <= start:
        raise GigValidationError(END_BEFORE_START_ERROR, {"end": END_BEFORE_START_ERROR})

    for field, value in data.items():
        setattr(gig, field, value)
    gig.updated_by = actor_id
    db.commit()
    db.refresh(gig)
    return gig


def delete_gig(db: Session, gig: models.Gig) -> None:
    gig_id = gig.id
    db.delete(gig)
    db.commit()
    logger.info("Deleted gig %s", gig_id)


def status_history(db: Session, gig_id: str) -> List[models.GigStatusHistory]:
    return (
        db.query(models.GigStatusHistory)
        .filter(models.GigStatusHistory.gig_id == gig_id)
        .order_by(models.GigStatusHistory.changed_at)
        .all()
    )


def respond_to_assignment(
    db: Session, gig_id: str, user_id: str, accept: bool
) -> List[models.GigStaffAssignment]:
    """Confirm or decline every assignment the user holds on the gig."""
    assignments = (
        db.query(models.GigStaffAssignment)
        .join(models.GigStaffSlot)
        .filter(models.GigStaffSlot.gig_id == gig_id, models.GigStaffAssignment.user_id == user_id)
        .all()
    )
    if not assignments:
        raise LookupError("No assignment for this user on the gig")
    for assignment in assignments:
        if accept:
            if assignment.status != models.AssignmentStatus.CONFIRMED:
                assignment.confirmed_at = utcnow()
            assignment.status = models.AssignmentStatus.CONFIRMED
        else:
            assignment.status = models.AssignmentStatus.DECLINED
            assignment.confirmed_at = None
    db.commit()
    for assignment in assignments:
        db.refresh(assignment)
    return assignments


# ─── Kit assignments ───────────────────────────────────────────────────────────


def list_gig_kits(db: Session, gig_id: str, organization_id: str) -> List[models.GigKitAssignment]:
    return (
        db.query(models.GigKitAssignment)
        .options(selectinload(models.GigKitAssignment.kit))
        .filter(
            models.GigKitAssignment.gig_id == gig_id,
            models.GigKitAssignment.organization_id == organization_id,
        )
        .order_by(models.GigKitAssignment.assigned_at)
        .all()
    )


def assign_kit(
    db: Session,
    gig: models.Gig,
    kit: models.Kit,
    organization_id: str,
    actor_id: str,
    notes: Optional[str] = None,
) -> models.GigKitAssignment:
    assignment = models.GigKitAssignment(
        gig_id=gig.id,
        kit_id=kit.id,
        organization_id=organization_id,
        notes=notes,
        assigned_by=actor_id,
    )
    db.add(assignment)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ValueError("Kit is already assigned to this gig") from None
    db.refresh(assignment)
    return assignment


def get_kit_assignment(db: Session, gig_id: str, assignment_id: str) -> Optional[models.GigKitAssignment]:
    return (
        db.query(models.GigKitAssignment)
        .filter(models.GigKitAssignment.id == assignment_id, models.GigKitAssignment.gig_id == gig_id)
        .first()
    )


def remove_kit_assignment(db: Session, assignment: models.GigKitAssignment) -> None:
    db.delete(assignment)
    db.commit()
