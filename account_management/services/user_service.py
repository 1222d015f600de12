"""
User service: profile updates and tenant-scoped user administration.

Every lookup is filtered on the caller's tenant_id, so a user id from another
tenant behaves exactly like an unknown id (404).
"""
import logging
import math
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import func, or_, select
from sqlalchemy.orm import Session

from account_management.models.user import User
from account_management.schemas.user import UserUpdateRequest
from account_management.core.exceptions import (
    ConflictException,
    ForbiddenException,
    NotFoundException,
)

logger = logging.getLogger(__name__)


def list_users(
    db: Session,
    tenant_id: uuid.UUID,
    search: Optional[str] = None,
    role: Optional[str] = None,
    page_offset: int = 0,
    page_size: int = 50,
) -> dict:
    """
    One page of the tenant's users ordered by email, shaped like UserListResponse.
    `search` matches email, first name or last name, case-insensitively.
    """
    query = select(User).where(User.tenant_id == tenant_id)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(or_(
            User.email.ilike(pattern),
            User.first_name.ilike(pattern),
            User.last_name.ilike(pattern),
        ))
    if role:
        query = query.where(User.role == role)

    total_count = db.scalar(select(func.count()).select_from(query.subquery()))
    users = db.scalars(
        query.order_by(User.email).offset(page_offset * page_size).limit(page_size)
    ).all()

    return {
        "total_count": total_count,
        "page_size": page_size,
        "total_pages": math.ceil(total_count / page_size),
        "current_page_offset": page_offset,
        "users": users,
    }


def get_user(db: Session, tenant_id: uuid.UUID, user_id: uuid.UUID) -> User:
    user = db.scalar(select(User).where(User.id == user_id, User.tenant_id == tenant_id))
    if not user:
        raise NotFoundException(f"User with id '{user_id}'")
    return user


def create_user(db: Session, actor: User, email: str, now: datetime) -> User:
    """
    Adds a member to the actor's tenant. The address is unconfirmed until the
    new user logs in with a code sent to it.
    """
    if actor.role not in ("owner", "admin"):
        raise ForbiddenException("Only owners and admins are allowed to create users.")

    existing = db.scalar(select(User).where(User.tenant_id == actor.tenant_id, User.email == email))
    if existing:
        raise ConflictException(f"The email '{email}' is already in use by another user on this tenant.")

    user = User(
        tenant_id=actor.tenant_id,
        email=email,
        role="member",
        email_confirmed=False,
        locale="en-US",
        created_at=now,
    )
    db.add(user)
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.id} created in tenant {actor.tenant_id} by {actor.id}")
    return user


def update_profile(db: Session, user: User, body: UserUpdateRequest, now: datetime) -> User:
    """
    Only provided fields are changed (PATCH-like behaviour even though the
    endpoints are PUTs). Blank strings clear a field.
    """
    if body.first_name is not None:
        user.first_name = body.first_name.strip() or None

    if body.last_name is not None:
        user.last_name = body.last_name.strip() or None

    if body.title is not None:
        user.title = body.title.strip() or None

    if body.locale is not None:
        user.locale = body.locale

    user.modified_at = now
    db.commit()
    db.refresh(user)
    return user


def update_user(
    db: Session,
    actor: User,
    user_id: uuid.UUID,
    body: UserUpdateRequest,
    now: datetime,
) -> User:
    """Profiles are personal: even owners cannot edit someone else's."""
    user = get_user(db, actor.tenant_id, user_id)
    if user.id != actor.id:
        raise ForbiddenException("You can only update your own user information.")
    return update_profile(db, user, body, now)


def change_user_role(
    db: Session,
    actor: User,
    user_id: uuid.UUID,
    role: str,
    now: datetime,
) -> tuple[User, str]:
    """Returns the user and the role they had before the change."""
    if actor.role != "owner":
        raise ForbiddenException("Only owners are allowed to change the role of users.")

    user = get_user(db, actor.tenant_id, user_id)
    if user.id == actor.id:
        raise ForbiddenException("You cannot change your own user role.")

    from_role = user.role
    user.role = role
    user.modified_at = now
    db.commit()
    db.refresh(user)
    logger.info(f"User {user.id} changed from {from_role} to {role} by {actor.id}")
    return user, from_role


def delete_user(db: Session, actor: User, user_id: uuid.UUID) -> None:
    """Removes the user together with their login attempts."""
    if actor.role != "owner":
        raise ForbiddenException("Only owners are allowed to delete other users.")

    user = get_user(db, actor.tenant_id, user_id)
    if user.id == actor.id:
        raise ForbiddenException("You cannot delete yourself.")

    db.delete(user)
    db.commit()
    logger.info(f"User {user_id} deleted from tenant {actor.tenant_id} by {actor.id}")
