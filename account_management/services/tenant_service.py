"""
Tenant service: provisioning a tenant with its owner, and tenant reads/updates.
"""
import uuid
from datetime import datetime

from sqlalchemy.orm import Session

from account_management.models.tenant import Tenant
from account_management.models.user import User
from account_management.core.exceptions import NotFoundException


def create_tenant_with_owner(
    db: Session,
    tenant_id: uuid.UUID,
    email: str,
    now: datetime,
) -> tuple[Tenant, User]:
    """
    Adds a new trial tenant and its owner to the session and flushes.
    Does NOT commit — the signup flow commits the completed signup, the tenant
    and the owner together.
    """
    tenant = Tenant(id=tenant_id, name="", state="trial", created_at=now)
    db.add(tenant)
    db.flush()

    owner = User(
        tenant_id=tenant.id,
        email=email,
        role="owner",
        email_confirmed=True,
        locale="en-US",
        created_at=now,
        last_seen_at=now,
    )
    db.add(owner)
    db.flush()
    return tenant, owner


def get_tenant(db: Session, tenant_id: uuid.UUID) -> Tenant:
    tenant = db.get(Tenant, tenant_id)
    if not tenant:
        raise NotFoundException(f"Tenant with id '{tenant_id}'")
    return tenant


def update_tenant(db: Session, tenant_id: uuid.UUID, name: str, now: datetime) -> Tenant:
    tenant = get_tenant(db, tenant_id)
    tenant.name = name
    tenant.modified_at = now
    db.commit()
    db.refresh(tenant)
    return tenant
