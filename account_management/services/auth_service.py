"""
Auth service: one-time-password login and token refresh.
Keeps routers thin — routers only handle HTTP, services handle logic.
"""
import logging
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session
from jwt.exceptions import InvalidTokenError

from account_management.models.login import Login
from account_management.models.user import User
from account_management.core.exceptions import CredentialsException
from account_management.core.security import decode_refresh_token
from account_management.services import one_time_password
from account_management.services.one_time_password import AttemptRepository

logger = logging.getLogger(__name__)

logins = AttemptRepository(Login)


def find_user_for_login(db: Session, email: str) -> Optional[User]:
    """
    An email can own users in several tenants; log into the one used most
    recently.
    """
    return db.execute(
        select(User)
        .where(User.email == email)
        .order_by(User.last_seen_at.desc().nulls_last(), User.created_at.asc())
        .limit(1)
    ).scalar_one_or_none()


def start_login(
    db: Session,
    email: str,
    now: Optional[datetime] = None,
) -> tuple[Optional[Login], Optional[str]]:
    """
    Returns (login, raw_code), or (None, None) when no user has this email.

    The unknown-email case is not an error to the caller: the router answers
    exactly like a real login so the endpoint cannot be used to discover which
    addresses have accounts.
    """
    email = one_time_password.normalize_email(email)
    user = find_user_for_login(db, email)
    if user is None:
        logger.info(f"Login requested for unknown email {email}")
        return None, None

    return one_time_password.start_attempt(
        db, logins, "login", email, now, user_id=user.id, tenant_id=user.tenant_id
    )


def complete_login(
    db: Session,
    login_id: uuid.UUID,
    code: str,
    now: Optional[datetime] = None,
) -> tuple[Login, User]:
    now = now or one_time_password.utcnow()
    login = one_time_password.complete_attempt(db, logins, "login", login_id, code, now)

    user = db.get(User, login.user_id)
    user.last_seen_at = now
    db.commit()
    db.refresh(user)
    return login, user


def resend_login_code(
    db: Session,
    login_id: uuid.UUID,
    now: Optional[datetime] = None,
) -> tuple[Login, str]:
    return one_time_password.resend_code(db, logins, "login", login_id, now)


def refresh_user(db: Session, refresh_token: str) -> User:
    """
    Resolves the user behind a refresh token.
    Refresh tokens are stateless JWTs; tenant and role come from the user row.
    """
    try:
        payload = decode_refresh_token(refresh_token)
        user_id = uuid.UUID(payload.get("sub") or "")
    except (InvalidTokenError, ValueError):
        raise CredentialsException("Invalid or expired refresh token")

    user = db.get(User, user_id)
    if not user:
        raise CredentialsException()
    return user
