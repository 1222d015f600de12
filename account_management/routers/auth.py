"""
Authentication router: token refresh.

Signing in happens through the one-time-password flows in signups.py and
logins.py; both return an access + refresh token pair. This router only trades
a refresh token for a new pair.
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from account_management.database import get_db
from account_management.core.rate_limiter import limiter
from account_management.core.security import create_token_pair
from account_management.schemas.auth import RefreshTokenRequest, TokenResponse
from account_management.services import auth_service

router = APIRouter()


@router.post("/refresh", response_model=TokenResponse)
@limiter.limit("20/minute")
def refresh_token(
    request: Request,
    body: RefreshTokenRequest,
    db: Session = Depends(get_db),
):
    """
    Exchange a valid refresh token for a new access token + refresh token.
    Tenant and role in the new access token come from the current user row,
    so a role change takes effect on the next refresh.
    """
    user = auth_service.refresh_user(db, body.refresh_token)
    return create_token_pair(user)
