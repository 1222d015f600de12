"""
Signup service: start a signup, verify its code, resend the code.

A verified signup provisions the tenant and its owner in the same transaction
that marks the signup completed, so provisioning happens at most once per
signup and never for a signup whose completion was rolled back.
"""
import logging
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from account_management.models.signup import Signup
from account_management.models.tenant import Tenant
from account_management.models.user import User
from account_management.services import one_time_password
from account_management.services.one_time_password import AttemptRepository
from account_management.services.tenant_service import create_tenant_with_owner

logger = logging.getLogger(__name__)

signups = AttemptRepository(Signup)


def start_signup(db: Session, email: str, now: Optional[datetime] = None) -> tuple[Signup, str]:
    """
    Returns (signup, raw_code). The tenant id is allocated here and carried on
    the signup row until the code is verified.
    """
    return one_time_password.start_attempt(
        db, signups, "signup", email, now, tenant_id=uuid.uuid4()
    )


def complete_signup(
    db: Session,
    signup_id: uuid.UUID,
    code: str,
    now: Optional[datetime] = None,
) -> tuple[Signup, Tenant, User]:
    now = now or one_time_password.utcnow()
    signup = one_time_password.complete_attempt(db, signups, "signup", signup_id, code, now)

    tenant_id = signup.tenant_id
    try:
        tenant, owner = create_tenant_with_owner(db, tenant_id, signup.email, now)
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        logger.exception(
            f"Provisioning failed for signup {signup_id} (tenant {tenant_id}); "
            f"signup left uncompleted"
        )
        raise

    db.refresh(owner)
    logger.info(f"Signup {signup_id} completed, tenant {tenant.id} created")
    return signup, tenant, owner


def resend_signup_code(
    db: Session,
    signup_id: uuid.UUID,
    now: Optional[datetime] = None,
) -> tuple[Signup, str]:
    return one_time_password.resend_code(db, signups, "signup", signup_id, now)
