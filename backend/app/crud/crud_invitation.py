"""Team invitations.

Inviting an email address that has no account creates a *pending* user and
its membership straight away, so the person can be staffed on gigs before
they sign in. Only the invited email address can accept; accepting the
invitation (or signing up with the same email) activates the user.
"""

import logging
from datetime import timedelta
from typing import List, Optional

from sqlalchemy.orm import Session

from .. import models, schemas
from ..core.config import settings
from ..models.types import utcnow
from ..utils.auth import generate_invitation_token, normalize_email
from .crud_organization import organization as crud_organization
from .crud_user import user as crud_user

logger = logging.getLogger(__name__)


def create_invitation(
    db: Session,
    organization_id: str,
    inviter_id: str,
    invitation_in: schemas.InvitationCreate,
) -> models.Invitation:
    email = normalize_email(invitation_in.email)
    invitee = crud_user.get_user_by_email(db, email)
    if invitee is None:
        invitee = models.User(
            email=email,
            first_name=invitation_in.first_name or "",
            last_name=invitation_in.last_name or "",
            user_status=models.UserStatus.PENDING,
        )
        db.add(invitee)
        db.flush()
    elif crud_organization.get_membership(db, organization_id, invitee.id) is not None:
        raise ValueError("Already a member")

    db.add(
        models.OrganizationMember(
            organization_id=organization_id,
            user_id=invitee.id,
            role=invitation_in.role,
        )
    )
    invitation = models.Invitation(
        organization_id=organization_id,
        email=email,
        role=invitation_in.role,
        invited_by=inviter_id,
        status=models.InvitationStatus.PENDING,
        token=generate_invitation_token(),
        expires_at=utcnow() + timedelta(days=settings.INVITATION_EXPIRE_DAYS),
    )
    db.add(invitation)
    db.commit()
    db.refresh(invitation)
    logger.info("Invitation %s sent to %s for organization %s", invitation.id, email, organization_id)
    return invitation


def list_pending_invitations(db: Session, organization_id: str) -> List[models.Invitation]:
    return (
        db.query(models.Invitation)
        .filter(
            models.Invitation.organization_id == organization_id,
            models.Invitation.status == models.InvitationStatus.PENDING,
        )
        .order_by(models.Invitation.created_at.desc())
        .all()
    )


def get_invitation(db: Session, organization_id: str, invitation_id: str) -> Optional[models.Invitation]:
    return (
        db.query(models.Invitation)
        .filter(
            models.Invitation.id == invitation_id,
            models.Invitation.organization_id == organization_id,
        )
        .first()
    )


def cancel_invitation(db: Session, invitation: models.Invitation) -> models.Invitation:
    if invitation.status != models.InvitationStatus.PENDING:
        raise ValueError("Only pending invitations can be cancelled")
    invitation.status = models.InvitationStatus.CANCELLED
    db.commit()
    db.refresh(invitation)
    return invitation


def accept_invitation(db: Session, token: str, current_user: models.User) -> models.Invitation:
    invitation = db.query(models.Invitation).filter(models.Invitation.token == token).first()
    if invitation is None:
        raise LookupError("Invitation not found")
    if invitation.status != models.InvitationStatus.PENDING:
        raise ValueError("Invitation has already been used")
    if invitation.expires_at <= utcnow():
        invitation.status = models.InvitationStatus.EXPIRED
        db.commit()
        raise ValueError("Invitation has expired")
    if normalize_email(current_user.email) != invitation.email:
        raise PermissionError("Invitation was sent to a different email address")

    if crud_organization.get_membership(db, invitation.organization_id, current_user.id) is None:
        db.add(
            models.OrganizationMember(
                organization_id=invitation.organization_id,
                user_id=current_user.id,
                role=invitation.role,
            )
        )
    if current_user.user_status == models.UserStatus.PENDING:
        current_user.user_status = models.UserStatus.ACTIVE

    invitation.status = models.InvitationStatus.ACCEPTED
    invitation.accepted_at = utcnow()
    invitation.accepted_by = current_user.id
    db.commit()
    db.refresh(invitation)
    logger.info("Invitation %s accepted by %s", invitation.id, current_user.id)
    return invitation
