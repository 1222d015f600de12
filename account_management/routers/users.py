"""
Users router: the authenticated user's own profile, and administration of the
other users in their tenant.

Endpoints:
  GET    /users/me                       → current user's profile
  PUT    /users/me                       → update first name, last name, title, locale
  GET    /users                          → paged, searchable list of the tenant's users
  GET    /users/{id}                     → one user of the tenant
  POST   /users                          → add a member (owners and admins)
  PUT    /users/{id}                     → update a profile (your own only)
  PUT    /users/{id}/change-user-role    → owners only, never on yourself
  DELETE /users/{id}                     → owners only, never yourself
"""
import uuid
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from account_management.database import get_db
from account_management.core.dependencies import get_current_user
from account_management.core.telemetry import TelemetryEventsCollector, get_events
from account_management.models.user import User
from account_management.schemas.user import (
    UserOut,
    UserUpdateRequest,
    UserListResponse,
    CreateUserRequest,
    ChangeUserRoleRequest,
)
from account_management.services import user_service
from account_management.services.one_time_password import utcnow

router = APIRouter()

USERS_PATH = "/api/account-management/users"


# /me is registered before /{user_id} so "me" is never parsed as an id

@router.get("/me", response_model=UserOut)
def get_me(current_user: User = Depends(get_current_user)):
    """
    Return the authenticated user's profile.
    No DB call needed: get_current_user already fetched the user.
    """
    return current_user


@router.put("/me", response_model=UserOut)
def update_me(
    body: UserUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    events: TelemetryEventsCollector = Depends(get_events),
):
    user = user_service.update_profile(db, current_user, body, utcnow())
    events.collect_event("UserUpdated", user_id=str(user.id))
    return user


@router.get("", response_model=UserListResponse)
def list_users(
    search: Optional[str] = Query(None, max_length=100),
    user_role: Optional[Literal["owner", "admin", "member"]] = Query(None),
    page_offset: int = Query(0, ge=0),
    page_size: int = Query(50, ge=1, le=100),
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return user_service.list_users(
        db, current_user.tenant_id, search, user_role, page_offset, page_size
    )


@router.get("/{user_id}", response_model=UserOut)
def get_user(
    user_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return user_service.get_user(db, current_user.tenant_id, user_id)


@router.post("", response_model=UserOut, status_code=status.HTTP_201_CREATED)
def create_user(
    body: CreateUserRequest,
    response: Response,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    events: TelemetryEventsCollector = Depends(get_events),
):
    user = user_service.create_user(db, current_user, body.email, utcnow())
    response.headers["Location"] = f"{USERS_PATH}/{user.id}"
    events.collect_event("UserCreated", tenant_id=str(user.tenant_id), user_id=str(user.id))
    return user


@router.put("/{user_id}", response_model=UserOut)
def update_user(
    user_id: uuid.UUID,
    body: UserUpdateRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    events: TelemetryEventsCollector = Depends(get_events),
):
    user = user_service.update_user(db, current_user, user_id, body, utcnow())
    events.collect_event("UserUpdated", user_id=str(user.id))
    return user


@router.put("/{user_id}/change-user-role", response_model=UserOut)
def change_user_role(
    user_id: uuid.UUID,
    body: ChangeUserRoleRequest,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    events: TelemetryEventsCollector = Depends(get_events),
):
    user, from_role = user_service.change_user_role(db, current_user, user_id, body.user_role, utcnow())
    events.collect_event("UserRoleChanged", user_id=str(user.id), from_role=from_role, to_role=user.role)
    return user


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(
    user_id: uuid.UUID,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
    events: TelemetryEventsCollector = Depends(get_events),
):
    user_service.delete_user(db, current_user, user_id)
    events.collect_event("UserDeleted", user_id=str(user_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
