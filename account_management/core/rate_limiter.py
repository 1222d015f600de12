"""
Per-IP request throttling with slowapi.

This is a coarse guard in front of the OTP endpoints. The per-email quota
(4 codes per 24 hours) lives in services/one_time_password.py and is counted
from the attempt rows in the database.

Decorated endpoints need a `request: Request` parameter so slowapi can read
the client address, and @limiter.limit goes under the @router decorator.
Tests switch it off with RATE_LIMIT_ENABLED=false.
"""
from slowapi import Limiter
from slowapi.util import get_remote_address

from account_management.config import settings

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=["200/minute"],
    enabled=settings.rate_limit_enabled,
)
