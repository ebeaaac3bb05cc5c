import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from fastapi.responses import ORJSONResponse
from sqlalchemy.orm import Session

from .. import crud
from ..crud import crud_invitation
from ..database import get_db
from ..models import MemberRole, Organization, OrganizationType, User
from ..schemas.organization import (
    InvitationCreate,
    InvitationResponse,
    MemberResponse,
    MemberUpdate,
    OrganizationCreate,
    OrganizationResponse,
    OrganizationUpdate,
)
from ..utils import error_response
from .dependencies import get_current_active_user, require_admin, require_manager, require_membership

router = APIRouter(tags=["organizations"], default_response_class=ORJSONResponse)
invitations_router = APIRouter(tags=["invitations"], default_response_class=ORJSONResponse)
logger = logging.getLogger(__name__)


def _organization_or_404(db: Session, organization_id: str) -> Organization:
    org = crud.organization.get_organization(db, organization_id)
    if org is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Organization not found")
    return org


@router.get("", response_model=List[OrganizationResponse])
def list_organizations(
    type: Optional[OrganizationType] = Query(None),
    search: Optional[str] = Query(None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    return crud.organization.list_organizations(db, type, search)


@router.post("", response_model=OrganizationResponse, status_code=status.HTTP_201_CREATED)
def create_organization(
    org_in: OrganizationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """Create an organization; the creator becomes its first Admin."""
    return crud.organization.create_organization(db, org_in, current_user.id)


@router.get("/{organization_id}", response_model=OrganizationResponse)
def read_organization(
    organization_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    return _organization_or_404(db, organization_id)


@router.put("/{organization_id}", response_model=OrganizationResponse)
def update_organization(
    organization_id: str,
    org_in: OrganizationUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    org = _organization_or_404(db, organization_id)
    require_admin(db, organization_id, current_user)
    return crud.organization.update_organization(db, org, org_in)


@router.post("/{organization_id}/join", response_model=MemberResponse)
def join_organization(
    organization_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    try:
        return crud.organization.join_organization(db, organization_id, current_user.id)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


# ─── Members ───────────────────────────────────────────────────────────────────


@router.get("/{organization_id}/members", response_model=List[MemberResponse])
def list_members(
    organization_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    _organization_or_404(db, organization_id)
    require_membership(db, organization_id, current_user)
    return crud.organization.list_members(db, organization_id)


@router.put("/{organization_id}/members/{member_id}", response_model=MemberResponse)
def update_member(
    organization_id: str,
    member_id: str,
    member_in: MemberUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    require_admin(db, organization_id, current_user)
    member = crud.organization.get_member(db, organization_id, member_id)
    if member is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found")
    return crud.organization.update_member(db, member, member_in)


@router.delete("/{organization_id}/members/{member_id}")
def remove_member(
    organization_id: str,
    member_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    require_admin(db, organization_id, current_user)
    member = crud.organization.get_member(db, organization_id, member_id)
    if member is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Member not found")
    crud.organization.remove_member(db, member)
    return {"success": True}


# ─── Invitations ───────────────────────────────────────────────────────────────


@router.post(
    "/{organization_id}/invitations",
    response_model=InvitationResponse,
    status_code=status.HTTP_201_CREATED,
)
def invite_member(
    organization_id: str,
    invitation_in: InvitationCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    _organization_or_404(db, organization_id)
    membership = require_manager(db, organization_id, current_user)
    if invitation_in.role == MemberRole.ADMIN and membership.role != MemberRole.ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Only admins can invite admins")
    try:
        return crud_invitation.create_invitation(db, organization_id, current_user.id, invitation_in)
    except ValueError as exc:
        raise error_response(str(exc), {"email": str(exc)}, status.HTTP_400_BAD_REQUEST)


@router.get("/{organization_id}/invitations", response_model=List[InvitationResponse])
def list_invitations(
    organization_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    require_manager(db, organization_id, current_user)
    return crud_invitation.list_pending_invitations(db, organization_id)


@router.delete("/{organization_id}/invitations/{invitation_id}", response_model=InvitationResponse)
def cancel_invitation(
    organization_id: str,
    invitation_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    require_manager(db, organization_id, current_user)
    invitation = crud_invitation.get_invitation(db, organization_id, invitation_id)
    if invitation is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Invitation not found")
    try:
        return crud_invitation.cancel_invitation(db, invitation)
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@invitations_router.post("/{token}/accept", response_model=InvitationResponse)
def accept_invitation(
    token: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    try:
        return crud_invitation.accept_invitation(db, token, current_user)
    except LookupError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    except PermissionError as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc))
    except ValueError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
