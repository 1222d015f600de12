"""
Email service using fastapi-mail over SMTP.

The OTP flows only need one operation — send(recipient, subject, html_body) —
so everything SMTP-specific stays behind EmailClient. Routers get the client
through the get_email_client dependency; tests replace it with a recorder.

Port / TLS combinations for fastapi-mail:
  - 587: MAIL_STARTTLS=True,  MAIL_SSL_TLS=False
  - 465: MAIL_SSL_TLS=True,   MAIL_STARTTLS=False
"""
import logging

from fastapi_mail import FastMail, MessageSchema, ConnectionConfig, MessageType

from account_management.config import settings
from account_management.services.one_time_password import VALID_FOR_SECONDS

logger = logging.getLogger(__name__)


class EmailClient:
    def __init__(self, config: ConnectionConfig):
        self._fast_mail = FastMail(config)

    async def send(self, recipient: str, subject: str, html_body: str) -> None:
        message = MessageSchema(
            subject=subject,
            recipients=[recipient],
            body=html_body,
            subtype=MessageType.html,
        )
        await self._fast_mail.send_message(message)


def build_mail_config() -> ConnectionConfig:
    return ConnectionConfig(
        MAIL_USERNAME=settings.mail_username,
        MAIL_PASSWORD=settings.mail_password,
        MAIL_FROM=settings.mail_from,
        MAIL_FROM_NAME=settings.mail_from_name,
        MAIL_PORT=settings.mail_port,
        MAIL_SERVER=settings.mail_server,
        MAIL_STARTTLS=settings.mail_starttls,
        MAIL_SSL_TLS=settings.mail_ssl_tls,
        USE_CREDENTIALS=bool(settings.mail_username),
        VALIDATE_CERTS=True,
        SUPPRESS_SEND=int(settings.mail_suppress_send),
    )


# Built once at module level, not per request
email_client = EmailClient(build_mail_config())


def get_email_client() -> EmailClient:
    return email_client


# ── Templates ─────────────────────────────────────────────────────────────────

def signup_code_email(code: str) -> tuple[str, str]:
    minutes = VALID_FOR_SECONDS // 60
    return (
        "Confirm your email address",
        f"""
        <h1 style="text-align:center;font-size:28px">Your confirmation code is below</h1>
        <p style="text-align:center">Enter it in your open browser window. It is only valid for {minutes} minutes.</p>
        <p style="text-align:center;font-size:24px;letter-spacing:6px"><b>{code}</b></p>
        <p style="text-align:center">If you did not sign up, you can safely ignore this email.</p>
        """,
    )


def login_code_email(code: str) -> tuple[str, str]:
    minutes = VALID_FOR_SECONDS // 60
    return (
        "Your login verification code",
        f"""
        <h1 style="text-align:center;font-size:28px">Your login code is below</h1>
        <p style="text-align:center">Enter it in your open browser window. It is only valid for {minutes} minutes.</p>
        <p style="text-align:center;font-size:24px;letter-spacing:6px"><b>{code}</b></p>
        <p style="text-align:center">If you did not try to log in, someone may know your email address.</p>
        """,
    )


def unknown_user_email() -> tuple[str, str]:
    return (
        "Unknown user tried to log in",
        """
        <h1 style="text-align:center;font-size:28px">You or someone else tried to log in</h1>
        <p style="text-align:center">This email address is not connected to any account.</p>
        <p style="text-align:center">If this was you, sign up for a new account instead.</p>
        """,
    )


# ── Background dispatch ───────────────────────────────────────────────────────

async def send_email(client: EmailClient, recipient: str, subject: str, html_body: str) -> None:
    """
    Runs as a FastAPI background task after the response is sent.
    The attempt row is already committed at this point, so a failed send is
    logged and the user recovers through "resend code"; nothing is rolled back.
    """
    try:
        await client.send(recipient, subject, html_body)
    except Exception:
        logger.exception(f"Failed to send '{subject}' email to {recipient}")
