import logging
from typing import List, Optional, Sequence, Tuple

from sqlalchemy import or_
from sqlalchemy.orm import Session

from .. import models, schemas
from ..utils.auth import normalize_email

logger = logging.getLogger(__name__)

SEARCH_LIMIT = 20


class CRUDUser:
    def get_user(self, db: Session, user_id: str) -> Optional[models.User]:
        return db.query(models.User).filter(models.User.id == user_id).first()

    def get_user_by_email(self, db: Session, email: str) -> Optional[models.User]:
        return db.query(models.User).filter(models.User.email == normalize_email(email)).first()

    def create_user(self, db: Session, user_id: str, user_in: schemas.UserCreate) -> Tuple[models.User, bool]:
        """Create the profile for a signed-in user.

        Returns ``(user, created)``. An existing profile is returned as is; a
        pending profile created by an invitation is claimed by the new sign-in.
        """
        existing = self.get_user(db, user_id)
        if existing:
            return existing, False

        email = normalize_email(user_in.email)
        data = user_in.model_dump(exclude={"email"})
        pending = self.get_user_by_email(db, email)
        if pending is not None:
            if pending.user_status != models.UserStatus.PENDING:
                raise ValueError("Email already registered")
            # Memberships and assignments follow through ON UPDATE CASCADE.
            pending.id = user_id
            for field, value in data.items():
                if value not in (None, ""):
                    setattr(pending, field, value)
            pending.user_status = models.UserStatus.ACTIVE
            db.commit()
            db.refresh(pending)
            logger.info("Activated invited user %s", user_id)
            return pending, True

        db_user = models.User(id=user_id, email=email, user_status=models.UserStatus.ACTIVE, **data)
        db.add(db_user)
        db.commit()
        db.refresh(db_user)
        return db_user, True

    def update_user(self, db: Session, db_user: models.User, user_in: schemas.UserUpdate) -> models.User:
        for field, value in user_in.model_dump(exclude_unset=True).items():
            setattr(db_user, field, value)
        db.commit()
        db.refresh(db_user)
        return db_user

    def organization_ids(self, db: Session, user_id: str) -> List[str]:
        rows = (
            db.query(models.OrganizationMember.organization_id)
            .filter(models.OrganizationMember.user_id == user_id)
            .all()
        )
        return [r[0] for r in rows]

    def memberships(
        self, db: Session, user_id: str, only_organization_ids: Optional[Sequence[str]] = None
    ) -> List[models.OrganizationMember]:
        query = (
            db.query(models.OrganizationMember)
            .join(models.Organization)
            .filter(models.OrganizationMember.user_id == user_id)
        )
        if only_organization_ids is not None:
            query = query.filter(models.OrganizationMember.organization_id.in_(list(only_organization_ids)))
        return query.order_by(models.Organization.name).all()

    def search_users(
        self,
        db: Session,
        organization_ids: Sequence[str],
        search: Optional[str] = None,
        limit: int = SEARCH_LIMIT,
    ) -> List[models.User]:
        """Users who belong to any of ``organization_ids``, optionally filtered."""
        if not organization_ids:
            return []
        member_ids = (
            db.query(models.OrganizationMember.user_id)
            .filter(models.OrganizationMember.organization_id.in_(list(organization_ids)))
        )
        query = db.query(models.User).filter(models.User.id.in_(member_ids))
        if search and search.strip():
            term = f"%{search.strip()}%"
            query = query.filter(
                or_(
                    models.User.first_name.ilike(term),
                    models.User.last_name.ilike(term),
                    models.User.email.ilike(term),
                )
            )
        return query.order_by(models.User.first_name, models.User.last_name).limit(limit).all()


user = CRUDUser() # Create an instance for easy import
