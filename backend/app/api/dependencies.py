from typing import Iterable, Optional

from fastapi import Depends, HTTPException, status
from jose import JWTError
from sqlalchemy.orm import Session

from ..database import get_db
from ..models import MANAGING_ROLES, MemberRole, OrganizationMember, User, UserStatus
from ..schemas.user import TokenData
from .auth import decode_access_token, oauth2_scheme


def _credentials_exception() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_token_claims(token: Optional[str] = Depends(oauth2_scheme)) -> dict:
    if not token:
        raise _credentials_exception()
    try:
        payload = decode_access_token(token)
    except JWTError:
        raise _credentials_exception()
    if not payload.get("sub"):
        raise _credentials_exception()
    return payload


def get_token_data(claims: dict = Depends(get_token_claims)) -> TokenData:
    return TokenData(user_id=str(claims["sub"]))


def get_current_user(token_data: TokenData = Depends(get_token_data), db: Session = Depends(get_db)) -> User:
    user = db.query(User).filter(User.id == token_data.user_id).first()
    if user is None:
        raise _credentials_exception()
    return user


def get_current_active_user(current_user: User = Depends(get_current_user)) -> User:
    if current_user.user_status == UserStatus.INACTIVE:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Inactive user")
    return current_user


def get_membership(db: Session, organization_id: str, user_id: str) -> Optional[OrganizationMember]:
    return (
        db.query(OrganizationMember)
        .filter(
            OrganizationMember.organization_id == organization_id,
            OrganizationMember.user_id == user_id,
        )
        .first()
    )


def require_membership(
    db: Session,
    organization_id: str,
    user: User,
    roles: Optional[Iterable[MemberRole]] = None,
    message: str = "Not a member of this organization",
) -> OrganizationMember:
    """Return the caller's membership or raise 403."""
    membership = get_membership(db, organization_id, user.id)
    if membership is None:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=message)
    if roles is not None and membership.role not in tuple(roles):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=message)
    return membership


def require_manager(db: Session, organization_id: str, user: User) -> OrganizationMember:
    return require_membership(
        db,
        organization_id,
        user,
        MANAGING_ROLES,
        "Only admins and managers of this organization can do this",
    )


def require_admin(db: Session, organization_id: str, user: User) -> OrganizationMember:
    return require_membership(
        db,
        organization_id,
        user,
        (MemberRole.ADMIN,),
        "Only admins of this organization can do this",
    )
