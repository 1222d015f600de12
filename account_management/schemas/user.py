"""
User schemas: profile views and update requests.
"""
from pydantic import BaseModel, field_validator, ConfigDict
from email_validator import validate_email, EmailNotValidError
from typing import Literal, Optional
from datetime import datetime

SUPPORTED_LOCALES = {"en-US", "da-DK"}
EMAIL_MAX_LENGTH = 100
INVALID_EMAIL_MESSAGE = "Email must be in a valid format and no longer than 100 characters."


def validate_email_address(v: str) -> str:
    """Lowercased, trimmed and syntax-checked (no DNS lookup)."""
    v = v.strip().lower()
    if len(v) > EMAIL_MAX_LENGTH:
        raise ValueError(INVALID_EMAIL_MESSAGE)
    try:
        validate_email(v, check_deliverability=False)
    except EmailNotValidError:
        raise ValueError(INVALID_EMAIL_MESSAGE)
    return v


class UserOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    tenant_id: str
    email: str
    role: str
    email_confirmed: bool
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    title: Optional[str] = None
    locale: str
    created_at: datetime
    modified_at: Optional[datetime] = None
    last_seen_at: Optional[datetime] = None

    # UUID → str conversion for JSON serialization
    @field_validator("id", "tenant_id", mode="before")
    @classmethod
    def uuid_to_str(cls, v) -> str:
        return str(v)


class UserUpdateRequest(BaseModel):
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    title: Optional[str] = None
    locale: Optional[str] = None

    @field_validator("first_name", "last_name")
    @classmethod
    def name_valid(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and len(v.strip()) > 30:
            raise ValueError("Names must be no longer than 30 characters")
        return v

    @field_validator("title")
    @classmethod
    def title_valid(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and len(v.strip()) > 50:
            raise ValueError("Title must be no longer than 50 characters")
        return v

    @field_validator("locale")
    @classmethod
    def locale_supported(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and v not in SUPPORTED_LOCALES:
            raise ValueError(f"Locale must be one of: {', '.join(sorted(SUPPORTED_LOCALES))}")
        return v


class UserAuthResponse(BaseModel):
    """Returned alongside tokens after a signup or login code is verified."""
    model_config = ConfigDict(from_attributes=True)

    id: str
    tenant_id: str
    email: str
    role: str

    @field_validator("id", "tenant_id", mode="before")
    @classmethod
    def uuid_to_str(cls, v) -> str:
        return str(v)


# ── User administration ───────────────────────────────────────────────────────

class CreateUserRequest(BaseModel):
    email: str

    @field_validator("email")
    @classmethod
    def email_valid(cls, v: str) -> str:
        return validate_email_address(v)


class ChangeUserRoleRequest(BaseModel):
    user_role: Literal["owner", "admin", "member"]


class UserListResponse(BaseModel):
    total_count: int
    page_size: int
    total_pages: int
    current_page_offset: int
    users: list[UserOut]
