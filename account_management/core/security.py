"""
Security utilities: one-time-password hashing and JWT token management.
Uses PyJWT for tokens and passlib for hashing.
"""
import jwt
from jwt.exceptions import InvalidTokenError
from passlib.context import CryptContext
from datetime import datetime, timedelta, timezone
from account_management.config import settings

# ── Code Hashing ──────────────────────────────────────────────────────────────
# bcrypt: salted and slow. Only the hash of a code is ever persisted.
pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")


def hash_one_time_password(code: str) -> str:
    return pwd_context.hash(code)


def verify_one_time_password(code: str, hashed_code: str) -> bool:
    return pwd_context.verify(code, hashed_code)


# ── JWT Tokens ────────────────────────────────────────────────────────────────

def _encode(claims: dict, lifetime: timedelta) -> str:
    issued_at = datetime.now(timezone.utc)
    payload = {**claims, "iat": issued_at, "exp": issued_at + lifetime}
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def _decode(token: str, token_type: str) -> dict:
    payload = jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
    if payload.get("type") != token_type:
        raise InvalidTokenError(f"Expected a {token_type} token")
    return payload


def create_access_token(user_id: str, tenant_id: str, role: str) -> str:
    """
    Short-lived access token.
    Carries the user (as 'sub'), the tenant the user belongs to and the role,
    so tenant-scoped endpoints never need a second lookup to find the tenant.
    """
    return _encode(
        {"sub": user_id, "tenant_id": tenant_id, "role": role, "type": "access"},
        timedelta(minutes=settings.access_token_expire_minutes),
    )


def create_refresh_token(user_id: str) -> str:
    """
    Long-lived refresh token. Holds only the user; tenant and role are
    re-read from the user row on refresh.
    """
    return _encode(
        {"sub": user_id, "type": "refresh"},
        timedelta(days=settings.refresh_token_expire_days),
    )


def create_token_pair(user) -> dict:
    """Access + refresh tokens for a User, shaped like TokenResponse."""
    return {
        "access_token": create_access_token(str(user.id), str(user.tenant_id), user.role),
        "refresh_token": create_refresh_token(str(user.id)),
        "token_type": "bearer",
    }


def decode_access_token(token: str) -> dict:
    """
    Raises jwt.exceptions.InvalidTokenError (expired, bad signature, or a
    refresh token presented as an access token). Callers turn that into 401.
    """
    return _decode(token, "access")


def decode_refresh_token(token: str) -> dict:
    return _decode(token, "refresh")
