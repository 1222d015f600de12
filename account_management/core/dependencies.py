"""
Authentication dependencies: resolve the bearer token to a User, and
restrict tenant administration to owners.
"""
import uuid

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from jwt.exceptions import InvalidTokenError

from account_management.database import get_db
from account_management.core.security import decode_access_token
from account_management.core.exceptions import CredentialsException, ForbiddenException
from account_management.models.user import User

# Logins are completed through the OTP flow; tokenUrl only feeds the OpenAPI docs
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/account-management/logins/start")


def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: Session = Depends(get_db),
) -> User:
    """
    Resolves the bearer access token to a User. Any failure is a 401: bad
    signature or expiry, a refresh token, a missing claim, an unknown user,
    or a user who no longer belongs to the tenant in the token.
    """
    try:
        payload = decode_access_token(token)
        user_id: str = payload.get("sub")
        tenant_id: str = payload.get("tenant_id")
        if user_id is None or tenant_id is None:
            raise CredentialsException()
    except InvalidTokenError:
        raise CredentialsException()

    user = db.get(User, _parse_uuid(user_id))
    if user is None or str(user.tenant_id) != tenant_id:
        raise CredentialsException()

    return user


def get_current_owner(
    current_user: User = Depends(get_current_user),
) -> User:
    """Requires the authenticated user to be the owner of their tenant."""
    if current_user.role != "owner":
        raise ForbiddenException("Only owners are allowed to update tenant information.")
    return current_user


def _parse_uuid(value: str):
    try:
        return uuid.UUID(value)
    except ValueError:
        raise CredentialsException()
