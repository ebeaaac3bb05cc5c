import logging
from typing import List, Optional

from sqlalchemy.orm import Session, joinedload

from .. import models, schemas
from ..services.staffing import get_or_create_staff_role

logger = logging.getLogger(__name__)

LIST_LIMIT = 20


class CRUDOrganization:
    def get_organization(self, db: Session, organization_id: str) -> Optional[models.Organization]:
        return db.query(models.Organization).filter(models.Organization.id == organization_id).first()

    def list_organizations(
        self,
        db: Session,
        org_type: Optional[models.OrganizationType] = None,
        search: Optional[str] = None,
        limit: int = LIST_LIMIT,
    ) -> List[models.Organization]:
        query = db.query(models.Organization)
        if org_type is not None:
            query = query.filter(models.Organization.type == org_type)
        if search and search.strip():
            query = query.filter(models.Organization.name.ilike(f"%{search.strip()}%"))
        return query.order_by(models.Organization.name).limit(limit).all()

    def create_organization(
        self, db: Session, org_in: schemas.OrganizationCreate, creator_id: str
    ) -> models.Organization:
        db_org = models.Organization(**org_in.model_dump())
        db.add(db_org)
        db.flush()
        db.add(
            models.OrganizationMember(
                organization_id=db_org.id,
                user_id=creator_id,
                role=models.MemberRole.ADMIN,
            )
        )
        db.commit()
        db.refresh(db_org)
        logger.info("Organization %s created by %s", db_org.id, creator_id)
        return db_org

    def update_organization(
        self, db: Session, db_org: models.Organization, org_in: schemas.OrganizationUpdate
    ) -> models.Organization:
        for field, value in org_in.model_dump(exclude_unset=True).items():
            if field in ("name", "type") and value is None:
                continue
            setattr(db_org, field, value)
        db.commit()
        db.refresh(db_org)
        return db_org

    def get_membership(
        self, db: Session, organization_id: str, user_id: str
    ) -> Optional[models.OrganizationMember]:
        return (
            db.query(models.OrganizationMember)
            .filter(
                models.OrganizationMember.organization_id == organization_id,
                models.OrganizationMember.user_id == user_id,
            )
            .first()
        )

    def join_organization(self, db: Session, organization_id: str, user_id: str) -> models.OrganizationMember:
        if self.get_organization(db, organization_id) is None:
            raise LookupError("Organization not found")
        if self.get_membership(db, organization_id, user_id) is not None:
            raise ValueError("Already a member")
        member = models.OrganizationMember(
            organization_id=organization_id,
            user_id=user_id,
            role=models.MemberRole.VIEWER,
        )
        db.add(member)
        db.commit()
        db.refresh(member)
        logger.info("User %s joined organization %s", user_id, organization_id)
        return member

    def list_members(self, db: Session, organization_id: str) -> List[models.OrganizationMember]:
        return (
            db.query(models.OrganizationMember)
            .options(joinedload(models.OrganizationMember.user))
            .filter(models.OrganizationMember.organization_id == organization_id)
            .order_by(models.OrganizationMember.created_at)
            .all()
        )

    def get_member(self, db: Session, organization_id: str, member_id: str) -> Optional[models.OrganizationMember]:
        return (
            db.query(models.OrganizationMember)
            .filter(
                models.OrganizationMember.id == member_id,
                models.OrganizationMember.organization_id == organization_id,
            )
            .first()
        )

    def update_member(
        self, db: Session, member: models.OrganizationMember, member_in: schemas.MemberUpdate
    ) -> models.OrganizationMember:
        data = member_in.model_dump(exclude_unset=True)
        if data.get("role") is not None:
            member.role = data["role"]
        if "default_staff_role" in data:
            name = (data["default_staff_role"] or "").strip()
            member.default_staff_role_id = get_or_create_staff_role(db, name).id if name else None
        db.commit()
        db.refresh(member)
        return member

    def remove_member(self, db: Session, member: models.OrganizationMember) -> None:
        db.delete(member)
        db.commit()


organization = CRUDOrganization()
