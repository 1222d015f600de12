"""Tests for the one-time-password core: code generation, the verification
state machine, the 24-hour window and the guarded updates."""

import uuid
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
from fastapi import HTTPException

from account_management.core.security import hash_one_time_password
from account_management.database import SessionLocal
from account_management.models.login import Login
from account_management.models.signup import Signup
from account_management.services import one_time_password
from account_management.services.one_time_password import (
    MAX_CODES_PER_WINDOW,
    MAX_RETRY_COUNT,
    RESEND_COOLDOWN_SECONDS,
    VALID_FOR_SECONDS,
    AttemptRepository,
    VerificationOutcome,
    as_utc,
    evaluate_attempt,
    generate_one_time_password,
    is_rate_limited,
    normalize_email,
    rate_limit_window_start,
    seconds_until_resend_allowed,
)

NOW = datetime(2026, 10, 18, 12, 0, 0, tzinfo=timezone.utc)
CODE = "424242"
CODE_HASH = hash_one_time_password(CODE)


def pending_attempt(**overrides):
    values = {
        "completed": False,
        "retry_count": 0,
        "valid_until": NOW + timedelta(seconds=VALID_FOR_SECONDS),
        "one_time_password_hash": CODE_HASH,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class TestCodeGeneration:
    def test_code_is_six_digits(self):
        for _ in range(50):
            code = generate_one_time_password()
            assert len(code) == 6
            assert code.isdigit()

    def test_codes_vary(self):
        codes = {generate_one_time_password() for _ in range(20)}
        assert len(codes) > 1

    def test_hash_never_equals_code(self):
        assert CODE_HASH != CODE
        assert CODE not in CODE_HASH

    def test_normalize_email(self):
        assert normalize_email("  Someone@Example.COM ") == "someone@example.com"


class TestEvaluateAttempt:
    def test_missing_attempt(self):
        assert evaluate_attempt(None, CODE, NOW) is VerificationOutcome.NOT_FOUND

    def test_completed_attempt_cannot_be_reverified(self):
        attempt = pending_attempt(completed=True)
        assert evaluate_attempt(attempt, CODE, NOW) is VerificationOutcome.ALREADY_COMPLETED

    def test_correct_code_after_expiry_is_expired(self):
        attempt = pending_attempt(valid_until=NOW - timedelta(seconds=1))
        assert evaluate_attempt(attempt, CODE, NOW) is VerificationOutcome.EXPIRED

    def test_expiry_boundary_is_exclusive(self):
        """now == valid_until already counts as expired."""
        attempt = pending_attempt(valid_until=NOW)
        assert evaluate_attempt(attempt, CODE, NOW) is VerificationOutcome.EXPIRED

    def test_naive_valid_until_is_treated_as_utc(self):
        attempt = pending_attempt(valid_until=(NOW + timedelta(minutes=1)).replace(tzinfo=None))
        assert evaluate_attempt(attempt, CODE, NOW) is VerificationOutcome.VERIFIED

    def test_exhausted_even_with_correct_code(self):
        attempt = pending_attempt(retry_count=MAX_RETRY_COUNT)
        assert evaluate_attempt(attempt, CODE, NOW) is VerificationOutcome.EXHAUSTED

    def test_one_retry_left_still_verifies(self):
        attempt = pending_attempt(retry_count=MAX_RETRY_COUNT - 1)
        assert evaluate_attempt(attempt, CODE, NOW) is VerificationOutcome.VERIFIED

    def test_wrong_code(self):
        assert evaluate_attempt(pending_attempt(), "000000", NOW) is VerificationOutcome.MISMATCH

    def test_expired_wins_over_exhausted(self):
        attempt = pending_attempt(retry_count=MAX_RETRY_COUNT, valid_until=NOW - timedelta(minutes=1))
        assert evaluate_attempt(attempt, CODE, NOW) is VerificationOutcome.EXPIRED


class TestWindowRules:
    def test_window_is_24_hours(self):
        assert NOW - rate_limit_window_start(NOW) == timedelta(hours=24)

    def test_rate_limit_threshold(self):
        assert not is_rate_limited(MAX_CODES_PER_WINDOW - 1)
        assert is_rate_limited(MAX_CODES_PER_WINDOW)
        assert is_rate_limited(MAX_CODES_PER_WINDOW + 3)

    def test_resend_cooldown(self):
        assert seconds_until_resend_allowed(NOW, NOW) == RESEND_COOLDOWN_SECONDS
        assert seconds_until_resend_allowed(NOW - timedelta(seconds=10), NOW) == 20
        assert seconds_until_resend_allowed(NOW - timedelta(seconds=RESEND_COOLDOWN_SECONDS), NOW) == 0
        assert seconds_until_resend_allowed(NOW - timedelta(minutes=4), NOW) == 0

    def test_as_utc_keeps_aware_values(self):
        assert as_utc(NOW) is NOW
        assert as_utc(NOW.replace(tzinfo=None)) == NOW


class TestAttemptRepository:
    repository = AttemptRepository(Signup)

    def test_tables_index_email_then_created_at(self, db):
        """The 24-hour count filters on email and a created_at range."""
        for model in (Signup, Login):
            indexes = {index.name: index for index in model.__table__.indexes}
            index = indexes[f"ix_{model.__tablename__}_email_created_at"]
            assert [column.name for column in index.columns] == ["email", "created_at"]

    def test_count_recent_includes_completed_and_expired_rows(self, db, make_signup):
        email = "counted@example.com"
        make_signup(email, NOW - timedelta(hours=1), completed=True)
        make_signup(email, NOW - timedelta(hours=2))
        make_signup("other@example.com", NOW - timedelta(hours=1))

        assert self.repository.count_recent_by_email(db, email, NOW) == 2

    def test_count_recent_ignores_rows_outside_window(self, db, make_signup):
        email = "old@example.com"
        make_signup(email, NOW - timedelta(hours=25))
        make_signup(email, NOW - timedelta(hours=23))

        assert self.repository.count_recent_by_email(db, email, NOW) == 1

    def test_count_recent_includes_resends(self, db, make_signup):
        email = "resent@example.com"
        make_signup(email, NOW - timedelta(hours=1), resend_count=2)

        assert self.repository.count_recent_by_email(db, email, NOW) == 3

    def test_find_active_by_email(self, db, make_signup):
        email = "active@example.com"
        make_signup(email, NOW - timedelta(hours=1))  # expired
        make_signup(email, NOW - timedelta(minutes=1), completed=True)
        assert self.repository.find_active_by_email(db, email, NOW) is None

        active = make_signup(email, NOW - timedelta(minutes=2))
        assert self.repository.find_active_by_email(db, email, NOW).id == active.id

    def test_update_if_not_completed_only_succeeds_once(self, db, make_signup):
        signup = make_signup("race@example.com", NOW)

        assert self.repository.update_if_not_completed(db, signup, 0, completed=True) is True
        db.commit()
        # A second request that read the same row state loses
        assert self.repository.update_if_not_completed(db, signup, 0, completed=True) is False

    def test_update_if_not_completed_checks_retry_count(self, db, make_signup):
        signup = make_signup("stale@example.com", NOW, retry_count=1)

        assert self.repository.update_if_not_completed(db, signup, 0, retry_count=1) is False
        assert self.repository.update_if_not_completed(db, signup, 1, retry_count=2) is True


class StaleReadRepository(AttemptRepository):
    """Hands each session the row it loaded up front, before any other session wrote."""

    def __init__(self, model, snapshots):
        super().__init__(model)
        self.snapshots = snapshots

    def get(self, db, attempt_id):
        return self.snapshots[db]


class TestFlows:
    repository = AttemptRepository(Signup)

    def test_start_attempt_stores_hash_and_window(self, db):
        signup, code = one_time_password.start_attempt(
            db, self.repository, "signup", " New@Example.com ", NOW, tenant_id=uuid.uuid4()
        )
        db.refresh(signup)

        assert signup.email == "new@example.com"
        assert signup.one_time_password_hash != code
        assert signup.retry_count == 0
        assert signup.completed is False
        assert as_utc(signup.valid_until) == NOW + timedelta(seconds=VALID_FOR_SECONDS)

    def test_complete_attempt_wrong_code_increments_retry(self, db, make_signup):
        signup = make_signup("wrong@example.com", NOW, code=CODE)

        with pytest.raises(HTTPException) as exc_info:
            one_time_password.complete_attempt(db, self.repository, "signup", signup.id, "000000", NOW)

        assert exc_info.value.status_code == 400
        db.expire_all()
        assert db.get(Signup, signup.id).retry_count == 1

    def test_complete_attempt_expired_does_not_increment_retry(self, db, make_signup):
        signup = make_signup("late@example.com", NOW - timedelta(minutes=10), code=CODE)

        with pytest.raises(HTTPException) as exc_info:
            one_time_password.complete_attempt(db, self.repository, "signup", signup.id, CODE, NOW)

        assert exc_info.value.status_code == 400
        assert exc_info.value.detail == "The code is wrong or no longer valid."
        db.expire_all()
        assert db.get(Signup, signup.id).retry_count == 0

    def test_complete_attempt_leaves_commit_to_caller(self, db, make_signup):
        signup = make_signup("pending@example.com", NOW, code=CODE)

        one_time_password.complete_attempt(db, self.repository, "signup", signup.id, CODE, NOW)
        db.rollback()

        db.expire_all()
        assert db.get(Signup, signup.id).completed is False

    def test_resend_resets_retries_and_window(self, db, make_signup):
        signup = make_signup(
            "again@example.com",
            NOW - timedelta(minutes=1),
            code=CODE,
            retry_count=MAX_RETRY_COUNT,
        )

        resent, new_code = one_time_password.resend_code(db, self.repository, "signup", signup.id, NOW)
        db.refresh(resent)

        assert resent.retry_count == 0
        assert resent.resend_count == 1
        assert as_utc(resent.last_sent_at) == NOW
        assert as_utc(resent.valid_until) == NOW + timedelta(seconds=VALID_FOR_SECONDS)
        assert evaluate_attempt(resent, new_code, NOW) is VerificationOutcome.VERIFIED


class TestConcurrentSubmissions:
    """Every session reads the row before any of them writes, as parallel requests would."""

    def _submit_all(self, signup, guesses):
        sessions = [SessionLocal() for _ in guesses]
        statuses = []
        try:
            repository = StaleReadRepository(Signup, {s: s.get(Signup, signup.id) for s in sessions})
            for session, guess in zip(sessions, guesses):
                try:
                    one_time_password.complete_attempt(session, repository, "signup", signup.id, guess, NOW)
                    session.commit()
                    statuses.append(200)
                except HTTPException as exc:
                    statuses.append(exc.status_code)
        finally:
            for session in sessions:
                session.close()
        return statuses

    def test_each_wrong_code_uses_a_retry(self, db, make_signup):
        """Five parallel wrong codes: three are counted, the rest hit the ceiling."""
        signup = make_signup("burst@example.com", NOW, code=CODE)

        statuses = self._submit_all(signup, ["000001", "000002", "000003", "000004", "000005"])

        assert statuses == [400, 400, 400, 403, 403]
        db.expire_all()
        assert db.get(Signup, signup.id).retry_count == MAX_RETRY_COUNT

    def test_correct_code_after_parallel_failures_is_refused(self, db, make_signup):
        """A correct code read before three wrong ones landed cannot complete the attempt."""
        signup = make_signup("late-guess@example.com", NOW, code=CODE)

        statuses = self._submit_all(signup, ["000001", "000002", "000003", CODE])

        assert statuses == [400, 400, 400, 403]
        db.expire_all()
        stored = db.get(Signup, signup.id)
        assert stored.completed is False
        assert stored.retry_count == MAX_RETRY_COUNT

    def test_only_one_completion_wins(self, db, make_signup):
        signup = make_signup("double@example.com", NOW, code=CODE)

        statuses = self._submit_all(signup, [CODE, CODE])

        assert statuses == [200, 409]
        db.expire_all()
        assert db.get(Signup, signup.id).completed is True
