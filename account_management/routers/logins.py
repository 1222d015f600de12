"""
Logins router: email one-time-password login for existing users.

Flow:
  1. POST /logins/start                 → 6-digit code emailed, login id returned
  2. POST /logins/{id}/complete         → code verified → tokens
  3. POST /logins/{id}/resend-code      → fresh code (30s cool-down, same 24h quota)

An unknown email gets the same response shape as a real one (with an id that
matches nothing) and the address is told that nobody has an account with it.
"""
import uuid
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
from account_management.services import auth_service
from account_management.services.email_service import (
    EmailClient, get_email_client, send_email, login_code_email, unknown_user_email,
)
from account_management.services.one_time_password import VALID_FOR_SECONDS

router = APIRouter()


@router.post("/start", response_model=StartAttemptResponse)
@limiter.limit("10/minute")
def start_login(
    request: Request,
    body: StartAttemptRequest,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    email_client: EmailClient = Depends(get_email_client),
    events: TelemetryEventsCollector = Depends(get_events),
):
    login, raw_code = auth_service.start_login(db, body.email)

    if login is None:
        subject, html_body = unknown_user_email()
        background_tasks.add_task(send_email, email_client, body.email, subject, html_body)
        return {"id": uuid.uuid4(), "valid_for_seconds": VALID_FOR_SECONDS}

    subject, html_body = login_code_email(raw_code)
    background_tasks.add_task(send_email, email_client, login.email, subject, html_body)

    events.collect_event("LoginStarted", login_id=str(login.id), user_id=str(login.user_id))
    return {"id": login.id, "valid_for_seconds": VALID_FOR_SECONDS}


@router.post("/{login_id}/complete", response_model=AuthenticatedResponse)
@limiter.limit("20/minute")
def complete_login(
    request: Request,
    login_id: UUID,
    body: CompleteAttemptRequest,
    db: Session = Depends(get_db),
    events: TelemetryEventsCollector = Depends(get_events),
):
    login, user = auth_service.complete_login(db, login_id, body.one_time_password)

    events.collect_event("LoginCompleted", login_id=str(login.id), user_id=str(user.id))
    return {
        **create_token_pair(user),
        "user": UserAuthResponse.model_validate(user),
    }


@router.post("/{login_id}/resend-code", response_model=ResendCodeResponse)
@limiter.limit("5/minute")
def resend_login_code(
    request: Request,
    login_id: UUID,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db),
    email_client: EmailClient = Depends(get_email_client),
    events: TelemetryEventsCollector = Depends(get_events),
):
    login, raw_code = auth_service.resend_login_code(db, login_id)

    subject, html_body = login_code_email(raw_code)
    background_tasks.add_task(send_email, email_client, login.email, subject, html_body)

    events.collect_event("LoginCodeResent", login_id=str(login.id))
    return {"valid_for_seconds": VALID_FOR_SECONDS}
