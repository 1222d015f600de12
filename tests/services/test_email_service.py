"""Tests for the email templates and background sending."""

import asyncio
import logging

from account_management.services.email_service import (
    login_code_email,
    send_email,
    signup_code_email,
    unknown_user_email,
)


class FailingEmailClient:
    async def send(self, recipient, subject, html_body):
        raise ConnectionError("smtp unavailable")


class TestTemplates:
    def test_signup_email_contains_code(self):
        subject, body = signup_code_email("012345")

        assert subject == "Confirm your email address"
        assert "<b>012345</b>" in body
        assert "5 minutes" in body

    def test_login_email_contains_code(self):
        subject, body = login_code_email("987654")

        assert subject == "Your login verification code"
        assert "<b>987654</b>" in body

    def test_unknown_user_email_has_no_code(self):
        subject, body = unknown_user_email()

        assert subject == "Unknown user tried to log in"
        assert "<b>" not in body


class TestSendEmail:
    def test_failure_is_logged_not_raised(self, caplog):
        """A send failure after the response must not surface as an error."""
        with caplog.at_level(logging.ERROR, logger="account_management.services.email_service"):
            asyncio.run(send_email(FailingEmailClient(), "a@example.com", "Subject", "<p>x</p>"))

        assert any("Failed to send 'Subject' email to a@example.com" in r.getMessage() for r in caplog.records)
