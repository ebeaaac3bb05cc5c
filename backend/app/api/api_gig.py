# backend/app/api/api_gig.py

import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, BackgroundTasks, Depends, HTTPException, Query, status
from fastapi.responses import ORJSONResponse
from sqlalchemy.orm import Session

from .. import models
from ..crud import crud_equipment, crud_gig
from ..database import get_db
from ..models import MANAGING_ROLES, MemberRole, User
from ..schemas.equipment import GigKitAssignmentCreate
from ..schemas.gig import (
    GigDetailResponse,
    GigForm,
    GigKitAssignmentResponse,
    GigPatch,
    GigResponse,
    GigSaveResponse,
    StatusHistoryResponse,
)
from ..services.compensation import split_compensation
from ..services.errors import GigValidationError
from ..services.gig_writer import GigCompositeWriter, SaveResult, SqlGigStore
from ..services.participants import denormalize_roles
from ..utils import error_response
from .api_ws import gig_events
from .dependencies import get_current_active_user, get_membership, require_manager, require_membership

router = APIRouter(tags=["gigs"], default_response_class=ORJSONResponse)
logger = logging.getLogger(__name__)


# ─── Payload builders ──────────────────────────────────────────────────────────


def gig_summary(gig: models.Gig) -> Dict[str, Any]:
    """Shared gig fields plus participants and the Venue/Act shortcuts."""
    data = GigResponse(
        id=gig.id,
        organization_id=gig.organization_id,
        title=gig.title,
        status=gig.status,
        tags=gig.tags or [],
        start=gig.start,
        end=gig.end,
        timezone=gig.timezone,
        amount_paid=gig.amount_paid,
        notes=gig.notes,
        parent_gig_id=gig.parent_gig_id,
        hierarchy_depth=gig.hierarchy_depth or 0,
        created_by=gig.created_by,
        updated_by=gig.updated_by,
        created_at=gig.created_at,
        updated_at=gig.updated_at,
        participants=list(gig.participants),
        **denormalize_roles(gig.participants),
    )
    return data.model_dump()


def _staff_payload(slots: List[models.GigStaffSlot]) -> List[Dict[str, Any]]:
    payload = []
    for slot in slots:
        assignments = []
        for a in slot.assignments:
            compensation_type, amount = split_compensation(a.rate, a.fee)
            assignments.append(
                {
                    "id": a.id,
                    "user_id": a.user_id,
                    "status": a.status,
                    "rate": a.rate,
                    "fee": a.fee,
                    "compensation_type": compensation_type,
                    "amount": amount,
                    "notes": a.notes,
                    "assigned_at": a.assigned_at,
                    "confirmed_at": a.confirmed_at,
                }
            )
        payload.append(
            {
                "id": slot.id,
                "organization_id": slot.organization_id,
                "staff_role_id": slot.staff_role_id,
                "role": slot.staff_role.name if slot.staff_role else "",
                "required_count": slot.required_count,
                "notes": slot.notes,
                "assignments": assignments,
            }
        )
    return payload


def _kit_payload(assignment: models.GigKitAssignment) -> Dict[str, Any]:
    return GigKitAssignmentResponse(
        id=assignment.id,
        gig_id=assignment.gig_id,
        kit_id=assignment.kit_id,
        organization_id=assignment.organization_id,
        notes=assignment.notes,
        assigned_by=assignment.assigned_by,
        assigned_at=assignment.assigned_at,
        kit_name=assignment.kit.name if assignment.kit else None,
    ).model_dump()


def gig_detail(db: Session, gig: models.Gig, organization_id: Optional[str]) -> Dict[str, Any]:
    """Gig summary plus the private data of ``organization_id``."""
    data = gig_summary(gig)
    if organization_id:
        data["staff_slots"] = _staff_payload(crud_gig.staff_slots_for(db, gig.id, organization_id))
        data["bids"] = crud_gig.bids_for(db, gig.id, organization_id)
        data["kit_assignments"] = [_kit_payload(k) for k in crud_gig.list_gig_kits(db, gig.id, organization_id)]
    return GigDetailResponse.model_validate(data).model_dump()


def save_report(result: SaveResult) -> Dict[str, Any]:
    return {
        "complete": result.complete,
        "results": {name: {"status": r.status, "error": r.error} for name, r in result.results.items()},
        "created_ids": dict(result.created_ids),
    }


# ─── Access helpers ────────────────────────────────────────────────────────────


def _gig_or_404(db: Session, gig_id: str) -> models.Gig:
    gig = crud_gig.get_gig(db, gig_id)
    if gig is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Gig not found")
    return gig


def _viewer_membership(
    db: Session, gig: models.Gig, user: User, organization_id: Optional[str] = None
) -> models.OrganizationMember:
    """Membership through which the caller sees the gig (403 if none)."""
    participating = crud_gig.participating_organization_ids(gig)
    if organization_id:
        if organization_id not in participating:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Organization is not on this gig")
        return require_membership(db, organization_id, user)
    memberships = [m for m in user.memberships if m.organization_id in participating]
    if not memberships:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Not a member of any organization on this gig")
    # Prefer the owner, then a managing membership.
    memberships.sort(key=lambda m: (m.organization_id != gig.organization_id, m.role not in MANAGING_ROLES))
    return memberships[0]


def _editor_membership(
    db: Session, gig: models.Gig, user: User, organization_id: Optional[str]
) -> models.OrganizationMember:
    participating = crud_gig.participating_organization_ids(gig)
    if organization_id:
        if organization_id not in participating:
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Organization is not on this gig")
        return require_manager(db, organization_id, user)
    memberships = [
        m for m in user.memberships if m.organization_id in participating and m.role in MANAGING_ROLES
    ]
    if not memberships:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Only admins and managers can edit gigs",
        )
    memberships.sort(key=lambda m: m.organization_id != gig.organization_id)
    return memberships[0]


def _publish(background_tasks: BackgroundTasks, gig: Dict[str, Any], org_ids, event_type: str) -> None:
    background_tasks.add_task(gig_events.publish, set(org_ids), event_type, gig)


def _run_writer(
    db: Session,
    form: GigForm,
    user: User,
    organization: models.Organization,
    gig_id: Optional[str] = None,
) -> SaveResult:
    writer = GigCompositeWriter(SqlGigStore(db), user.id, organization.id, organization.type)
    try:
        return writer.save(
            form.core_fields(),
            participants=form.participant_rows(),
            bids=form.bid_rows(),
            staff_slots=form.staff_rows(),
            kit_notes=form.kit_notes(),
            gig_id=gig_id,
        )
    except GigValidationError as exc:
        raise error_response(exc.message, exc.field_errors, status.HTTP_400_BAD_REQUEST)


# ─── Routes ────────────────────────────────────────────────────────────────────


@router.get("", response_model=List[GigResponse])
def list_gigs(
    organization_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """Gigs the organization takes part in, newest start first."""
    if not organization_id:
        raise error_response(
            "organization_id is required",
            {"organization_id": "required"},
            status.HTTP_400_BAD_REQUEST,
        )
    require_membership(db, organization_id, current_user)
    return [gig_summary(g) for g in crud_gig.list_gigs_for_organization(db, organization_id)]


@router.post("", response_model=GigSaveResponse, status_code=status.HTTP_201_CREATED)
def create_gig(
    form: GigForm,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    if not form.primary_organization_id:
        raise error_response(
            "primary_organization_id is required",
            {"primary_organization_id": "required"},
            status.HTTP_400_BAD_REQUEST,
        )
    organization = db.get(models.Organization, form.primary_organization_id)
    if organization is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Organization not found")
    require_manager(db, organization.id, current_user)

    result = _run_writer(db, form, current_user, organization)
    db.expire_all()
    gig = _gig_or_404(db, result.gig_id)
    payload = gig_detail(db, gig, organization.id)
    _publish(background_tasks, gig_summary(gig), crud_gig.participating_organization_ids(gig), "INSERT")
    return {"gig": payload, "save": save_report(result)}


@router.get("/{gig_id}", response_model=GigDetailResponse)
def read_gig(
    gig_id: str,
    organization_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    gig = _gig_or_404(db, gig_id)
    membership = _viewer_membership(db, gig, current_user, organization_id)
    return gig_detail(db, gig, membership.organization_id)


@router.put("/{gig_id}", response_model=GigSaveResponse)
def update_gig(
    gig_id: str,
    form: GigForm,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    gig = _gig_or_404(db, gig_id)
    membership = _editor_membership(db, gig, current_user, form.primary_organization_id)
    organization = membership.organization
    before = crud_gig.participating_organization_ids(gig)

    result = _run_writer(db, form, current_user, organization, gig_id=gig.id)
    db.expire_all()
    gig = _gig_or_404(db, gig_id)
    payload = gig_detail(db, gig, organization.id)
    _publish(
        background_tasks,
        gig_summary(gig),
        before | crud_gig.participating_organization_ids(gig),
        "UPDATE",
    )
    return {"gig": payload, "save": save_report(result)}


@router.patch("/{gig_id}", response_model=GigResponse)
def patch_gig(
    gig_id: str,
    patch: GigPatch,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """Inline edit of a single field from the list view."""
    gig = _gig_or_404(db, gig_id)
    _editor_membership(db, gig, current_user, None)
    try:
        gig = crud_gig.patch_gig(db, gig, patch, current_user.id)
    except GigValidationError as exc:
        raise error_response(exc.message, exc.field_errors, status.HTTP_400_BAD_REQUEST)
    payload = gig_summary(gig)
    _publish(background_tasks, payload, crud_gig.participating_organization_ids(gig), "UPDATE")
    return payload


@router.delete("/{gig_id}")
def delete_gig(
    gig_id: str,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    gig = _gig_or_404(db, gig_id)
    membership = get_membership(db, gig.organization_id, current_user.id)
    if membership is None or membership.role != MemberRole.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only admins can delete gigs")
    payload = gig_summary(gig)
    org_ids = crud_gig.participating_organization_ids(gig)
    crud_gig.delete_gig(db, gig)
    _publish(background_tasks, payload, org_ids, "DELETE")
    return {"success": True}


@router.get("/{gig_id}/history", response_model=List[StatusHistoryResponse])
def read_status_history(
    gig_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    gig = _gig_or_404(db, gig_id)
    _viewer_membership(db, gig, current_user)
    return crud_gig.status_history(db, gig.id)


def _respond(db: Session, gig_id: str, user: User, accept: bool) -> Dict[str, Any]:
    _gig_or_404(db, gig_id)
    try:
        assignments = crud_gig.respond_to_assignment(db, gig_id, user.id, accept)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    return {
        "gig_id": gig_id,
        "assignments": [
            {"id": a.id, "status": a.status, "confirmed_at": a.confirmed_at} for a in assignments
        ],
    }


@router.post("/{gig_id}/accept")
def accept_gig(
    gig_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """Confirm the caller's own assignment on the gig."""
    return _respond(db, gig_id, current_user, accept=True)


@router.post("/{gig_id}/decline")
def decline_gig(
    gig_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    return _respond(db, gig_id, current_user, accept=False)


# ─── Kit assignments ───────────────────────────────────────────────────────────


@router.get("/{gig_id}/kits", response_model=List[GigKitAssignmentResponse])
def list_gig_kits(
    gig_id: str,
    organization_id: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    gig = _gig_or_404(db, gig_id)
    membership = _viewer_membership(db, gig, current_user, organization_id)
    return [_kit_payload(k) for k in crud_gig.list_gig_kits(db, gig.id, membership.organization_id)]


@router.post("/{gig_id}/kits", response_model=GigKitAssignmentResponse, status_code=status.HTTP_201_CREATED)
def assign_kit(
    gig_id: str,
    assignment_in: GigKitAssignmentCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    gig = _gig_or_404(db, gig_id)
    kit = crud_equipment.get_kit(db, assignment_in.kit_id)
    if kit is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Kit not found")
    organization_id = assignment_in.organization_id or kit.organization_id
    if organization_id != kit.organization_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Kit belongs to another organization")
    _editor_membership(db, gig, current_user, organization_id)
    try:
        assignment = crud_gig.assign_kit(db, gig, kit, organization_id, current_user.id, assignment_in.notes)
    except ValueError as exc:
        raise error_response(str(exc), {"kit_id": str(exc)}, status.HTTP_400_BAD_REQUEST)
    return _kit_payload(assignment)


@router.delete("/{gig_id}/kits/{assignment_id}")
def remove_kit(
    gig_id: str,
    assignment_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    gig = _gig_or_404(db, gig_id)
    assignment = crud_gig.get_kit_assignment(db, gig.id, assignment_id)
    if assignment is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Kit assignment not found")
    _editor_membership(db, gig, current_user, assignment.organization_id)
    crud_gig.remove_kit_assignment(db, assignment)
    return {"success": True}
