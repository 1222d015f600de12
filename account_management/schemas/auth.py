"""
Auth schemas: request bodies and responses for the one-time-password signup and
login flows and for token refresh. Signups and logins share these shapes.
"""
from pydantic import BaseModel, field_validator
from uuid import UUID
import re

from account_management.schemas.user import UserAuthResponse, validate_email_address


class StartAttemptRequest(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def email_valid(cls, v: str) -> str:
        return validate_email_address(v)


class StartAttemptResponse(BaseModel):
    id: UUID
    valid_for_seconds: int


class CompleteAttemptRequest(BaseModel):
    one_time_password: str

    @field_validator("one_time_password")
    @classmethod
    def code_format(cls, v: str) -> str:
        v = v.strip()
        if not re.fullmatch(r"[0-9]{6}", v):
            raise ValueError("The code must be exactly 6 digits.")
        return v


class ResendCodeResponse(BaseModel):
    valid_for_seconds: int


class RefreshTokenRequest(BaseModel):
    refresh_token: str


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class AuthenticatedResponse(TokenResponse):
    """Tokens plus the signed-in user, returned when a code is verified."""
    user: UserAuthResponse

