import logging
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from fastapi.responses import ORJSONResponse
from sqlalchemy.orm import Session

from .. import crud
from ..database import get_db
from ..models import User
from ..schemas.user import UserCreate, UserOrganizationResponse, UserResponse, UserSummary, UserUpdate
from ..utils import error_response
from .dependencies import get_current_active_user, get_token_claims

router = APIRouter(tags=["users"], default_response_class=ORJSONResponse)
logger = logging.getLogger(__name__)


@router.post("", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
def create_user(
    user_in: UserCreate,
    response: Response,
    db: Session = Depends(get_db),
    claims: dict = Depends(get_token_claims),
) -> Any:
    """Create the caller's profile on first sign-in (idempotent)."""
    try:
        db_user, created = crud.user.create_user(db, str(claims["sub"]), user_in)
    except ValueError as exc:
        raise error_response(str(exc), {"email": str(exc)}, status.HTTP_400_BAD_REQUEST)
    if not created:
        response.status_code = status.HTTP_200_OK
    return db_user


@router.get("", response_model=List[UserSummary])
def search_users(
    search: Optional[str] = Query(None),
    organization_ids: Optional[str] = Query(None, description="Comma-separated organization ids"),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """Search people in the caller's organizations (for staffing pickers)."""
    own = set(crud.user.organization_ids(db, current_user.id))
    if organization_ids:
        requested = {o.strip() for o in organization_ids.split(",") if o.strip()}
        scope = requested & own
    else:
        scope = own
    return crud.user.search_users(db, sorted(scope), search)


@router.get("/{user_id}", response_model=UserResponse)
def read_user(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    db_user = crud.user.get_user(db, user_id)
    if db_user is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return db_user


@router.put("/{user_id}", response_model=UserResponse)
def update_user(
    user_id: str,
    user_in: UserUpdate,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    if user_id != current_user.id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="You can only update your own profile")
    return crud.user.update_user(db, current_user, user_in)


@router.get("/{user_id}/organizations", response_model=List[UserOrganizationResponse])
def read_user_organizations(
    user_id: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_active_user),
) -> Any:
    """The user's memberships; for another user, only organizations shared with the caller."""
    if crud.user.get_user(db, user_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    only = None if user_id == current_user.id else crud.user.organization_ids(db, current_user.id)
    return [
        UserOrganizationResponse(
            organization_id=m.organization_id,
            name=m.organization.name,
            type=m.organization.type,
            role=m.role,
            default_staff_role_id=m.default_staff_role_id,
        )
        for m in crud.user.memberships(db, user_id, only)
    ]
