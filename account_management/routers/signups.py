"""
Signups router: email one-time-password signup.

Flow:
  1. POST /signups/start                → 6-digit code emailed, signup id returned
  2. POST /signups/{id}/complete        → code verified → tenant + owner created → tokens
  3. POST /signups/{id}/resend-code     → fresh code (30s cool-down, same 24h quota)
"""
from uuid import UUID

from fastapi import APIRouter, Depends, BackgroundTasks, Request
from sqlalchemy.orm import Session

from account_management.database import get_db
from account_management.core.rate_limiter import limiter
from account_management.core.security import create_token_pair
from account_management.core.telemetry import TelemetryEventsCollector, get_events
from account_management.schemas.auth import (
    StartAttemptRequest, StartAttemptResponse, CompleteAttemptRequest,
    ResendCodeResponse, AuthenticatedResponse,
)
from account_management.schemas.user import UserAuthResponse
from account_management.services import signup_service
from account_management.services.email_service import (
    EmailClient, get_email_client, send_email, signup_code_email,
)
from account_management.services.one_time_password import VALID_FOR_SECONDS

router = APIRouter()

@router.post("/start", response_model=StartAttemptResponse)
@limiter.limit("10/minute")
def start_signup(
    request: Request,
    body: StartAttemptRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    email_client: EmailClient = Depends(get_email_client),
    events: TelemetryEventsCollector = Depends(get_events),
):
    """
    Creates a signup and emails the code. The email is sent after the response
    (BackgroundTasks); the signup row is already committed by then.
    """
    signup, raw_code = signup_service.start_signup(db, body.email)

    subject, html_body = signup_code_email(raw_code)
    background_tasks.add_task(send_email, email_client, signup.email, subject, html_body)

    events.collect_event("SignupStarted", signup_id=str(signup.id))
    return {"id": signup.id, "valid_for_seconds": VALID_FOR_SECONDS}

@router.post("/{signup_id}/complete", response_model=AuthenticatedResponse)
@limiter.limit("20/minute")
def complete_signup(
    request: Request,
    signup_id: UUID,
    body: CompleteAttemptRequest,
    db: Session = Depends(get_db),
    events: TelemetryEventsCollector = Depends(get_events),
):
    """Verify the code, create the tenant with its owner and sign the owner in."""
    signup, tenant, owner = signup_service.complete_signup(db, signup_id, body.one_time_password)

    events.collect_event("SignupCompleted", signup_id=str(signup.id), tenant_id=str(tenant.id))
    events.collect_event("TenantCreated", tenant_id=str(tenant.id), state=tenant.state)
    return {
        **create_token_pair(owner),
        "user": UserAuthResponse.model_validate(owner),
    }

@router.post("/{signup_id}/resend-code", response_model=ResendCodeResponse)
@limiter.limit("5/minute")
def resend_signup_code(
    request: Request,
    signup_id: UUID,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    email_client: EmailClient = Depends(get_email_client),
    events: TelemetryEventsCollector = Depends(get_events),
):
    signup, raw_code = signup_service.resend_signup_code(db, signup_id)

    subject, html_body = signup_code_email(raw_code)
    background_tasks.add_task(send_email, email_client, signup.email, subject, html_body)

    events.collect_event("SignupCodeResent", signup_id=str(signup.id))
    return {"valid_for_seconds": VALID_FOR_SECONDS}
