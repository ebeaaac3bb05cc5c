"""Row builders shared by the API tests."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from app.api.auth import create_access_token
from app.models import (
    MemberRole,
    Organization,
    OrganizationMember,
    OrganizationType,
    User,
)

_counter = {"n": 0}


def _next() -> int:
    _counter["n"] += 1
    return _counter["n"]


def make_user(db, email: str | None = None, first_name: str = "Test", last_name: str = "User") -> User:
    user = User(email=email or f"user{_next()}@example.com", first_name=first_name, last_name=last_name)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def make_org(db, name: str | None = None, org_type: OrganizationType = OrganizationType.PRODUCTION) -> Organization:
    org = Organization(name=name or f"Org {_next()}", type=org_type)
    db.add(org)
    db.commit()
    db.refresh(org)
    return org


def add_member(db, org: Organization, user: User, role: MemberRole = MemberRole.ADMIN) -> OrganizationMember:
    member = OrganizationMember(organization_id=org.id, user_id=user.id, role=role)
    db.add(member)
    db.commit()
    db.refresh(member)
    return member


def auth_headers(user: User) -> dict:
    token = create_access_token({"sub": user.id, "email": user.email})
    return {"Authorization": f"Bearer {token}"}


def gig_payload(org: Organization, **overrides) -> dict:
    start = datetime(2030, 5, 1, 18, 0, tzinfo=timezone.utc)
    data = {
        "primary_organization_id": org.id,
        "title": "Summer Festival",
        "status": "DateHold",
        "tags": ["festival"],
        "timezone": "America/Los_Angeles",
        "start": start.isoformat(),
        "end": (start + timedelta(hours=5)).isoformat(),
        "amount_paid": "",
    }
    data.update(overrides)
    return data
