"""
Tenants router.

Endpoints:
  GET /tenants/current  → the tenant of the authenticated user
  PUT /tenants/current  → rename it (owners only)
"""
from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from account_management.database import get_db
from account_management.core.dependencies import get_current_user, get_current_owner
from account_management.core.telemetry import TelemetryEventsCollector, get_events
from account_management.models.user import User
from account_management.schemas.tenant import TenantOut, TenantUpdateRequest
from account_management.services import tenant_service
from account_management.services.one_time_password import utcnow

router = APIRouter()


@router.get("/current", response_model=TenantOut)
def get_current_tenant(
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    return tenant_service.get_tenant(db, current_user.tenant_id)


@router.put("/current", response_model=TenantOut)
def update_current_tenant(
    body: TenantUpdateRequest,
    owner: User = Depends(get_current_owner),
    db: Session = Depends(get_db),
    events: TelemetryEventsCollector = Depends(get_events),
):
    tenant = tenant_service.update_tenant(db, owner.tenant_id, body.name, utcnow())
    events.collect_event("TenantUpdated", tenant_id=str(tenant.id))
    return tenant
