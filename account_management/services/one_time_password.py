"""
One-time-password core shared by the signup and login flows.

Lifecycle of an attempt row:

    Pending ──correct code──▶ Verified   (completed=True, terminal)
       │  └──wrong code────▶ Pending    (retry_count + 1)
       ├──now ≥ valid_until─▶ Expired    (terminal)
       └──retry_count ≥ 3──▶ Exhausted  (only a resend brings it back)

Security design decisions:
  1. Raw codes are NEVER stored — only the bcrypt hash.
  2. secrets.randbelow() is cryptographically secure (unlike random.randint).
  3. At most 4 codes per email in any trailing 24 hours, counted from the rows
     themselves so the limiter holds no process state.
  4. Code submissions write through UPDATEs guarded in the database on
     (completed = false, retry_count < 3). A wrong code increments
     retry_count in SQL, so every concurrent guess is counted, and the
     correct code only completes an attempt that still has retries left.
     Resend is guarded on the retry_count it read.
"""
import enum
import logging
import secrets
import uuid
from datetime import datetime, timedelta, timezone
from typing import Optional

from sqlalchemy import func, select, update
from sqlalchemy.orm import Session

from account_management.core.exceptions import (
    AttemptsExhaustedException,
    BadRequestException,
    ConflictException,
    InvalidOneTimePasswordException,
    NotFoundException,
    ResendTooSoonException,
    TooManyRequestsException,
)
from account_management.core.security import hash_one_time_password, verify_one_time_password

logger = logging.getLogger(__name__)

CODE_LENGTH = 6
VALID_FOR_SECONDS = 300
MAX_RETRY_COUNT = 3
RESEND_COOLDOWN_SECONDS = 30
RATE_LIMIT_WINDOW = timedelta(hours=24)
MAX_CODES_PER_WINDOW = 4


class VerificationOutcome(str, enum.Enum):
    NOT_FOUND = "not_found"
    ALREADY_COMPLETED = "already_completed"
    EXPIRED = "expired"
    EXHAUSTED = "exhausted"
    MISMATCH = "mismatch"
    VERIFIED = "verified"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite hands timestamps back naive; every stored timestamp is UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def normalize_email(email: str) -> str:
    return email.strip().lower()


def generate_one_time_password() -> str:
    """
    Six random digits. Leading zeros are allowed, so the full
    000000–999999 range is used.
    """
    return f"{secrets.randbelow(10 ** CODE_LENGTH):0{CODE_LENGTH}d}"


# ── Pure rules ────────────────────────────────────────────────────────────────

def evaluate_attempt(attempt, code: str, now: datetime) -> VerificationOutcome:
    """
    Decide what a code submission does to an attempt. Checks run in a fixed
    order and the hash comparison only happens for a pending attempt, so an
    exhausted attempt never gets another guess.
    """
    if attempt is None:
        return VerificationOutcome.NOT_FOUND
    if attempt.completed:
        return VerificationOutcome.ALREADY_COMPLETED
    if now >= as_utc(attempt.valid_until):
        return VerificationOutcome.EXPIRED
    if attempt.retry_count >= MAX_RETRY_COUNT:
        return VerificationOutcome.EXHAUSTED
    if not verify_one_time_password(code, attempt.one_time_password_hash):
        return VerificationOutcome.MISMATCH
    return VerificationOutcome.VERIFIED


def rate_limit_window_start(now: datetime) -> datetime:
    return now - RATE_LIMIT_WINDOW


def is_rate_limited(codes_issued: int) -> bool:
    return codes_issued >= MAX_CODES_PER_WINDOW


def seconds_until_resend_allowed(last_sent_at: datetime, now: datetime) -> int:
    elapsed = (now - as_utc(last_sent_at)).total_seconds()
    return max(0, int(RESEND_COOLDOWN_SECONDS - elapsed))


# ── Persistence ───────────────────────────────────────────────────────────────

class AttemptRepository:
    """
    Queries for one attempt table (Signup or Login).

    Usage:
        signups = AttemptRepository(Signup)
        signups.find_active_by_email(db, "a@b.com", now)
    """

    def __init__(self, model):
        self.model = model

    def get(self, db: Session, attempt_id: uuid.UUID):
        """
        Loads the row with SELECT ... FOR UPDATE (a no-op on SQLite), so code
        submissions for one attempt run one at a time on PostgreSQL.
        """
        return db.get(self.model, attempt_id, with_for_update=True, populate_existing=True)

    def find_active_by_email(self, db: Session, email: str, now: datetime):
        """Uncompleted, unexpired attempt for this email, if any."""
        return db.execute(
            select(self.model)
            .where(
                self.model.email == email,
                self.model.completed == False,  # noqa: E712
                self.model.valid_until > now,
            )
            .order_by(self.model.created_at.desc())
            .limit(1)
        ).scalar_one_or_none()

    def count_recent_by_email(self, db: Session, email: str, now: datetime) -> int:
        """
        Codes issued to this email inside the rate-limit window: one per
        attempt row created in the window plus every resend on those rows.
        Completed and expired rows count too.
        """
        rows, resends = db.execute(
            select(
                func.count(self.model.id),
                func.coalesce(func.sum(self.model.resend_count), 0),
            ).where(
                self.model.email == email,
                self.model.created_at > rate_limit_window_start(now),
            )
        ).one()
        return int(rows) + int(resends)

    def insert(self, db: Session, attempt) -> None:
        db.add(attempt)
        db.flush()

    def update_if_not_completed(
        self,
        db: Session,
        attempt,
        expected_retry_count: int,
        **values,
    ) -> bool:
        """
        UPDATE ... WHERE id = ? AND completed = false AND retry_count = ?
        Returns False when a concurrent request changed the row first.
        """
        result = db.execute(
            update(self.model)
            .where(
                self.model.id == attempt.id,
                self.model.completed == False,  # noqa: E712
                self.model.retry_count == expected_retry_count,
            )
            .values(**values)
        )
        return result.rowcount == 1

    def _pending(self, attempt) -> tuple:
        return (
            self.model.id == attempt.id,
            self.model.completed == False,  # noqa: E712
            self.model.retry_count < MAX_RETRY_COUNT,
        )

    def register_wrong_code(self, db: Session, attempt, now: datetime) -> bool:
        """
        UPDATE ... SET retry_count = retry_count + 1
        WHERE id = ? AND completed = false AND retry_count < 3

        The increment happens in the database, so concurrent wrong codes are
        each counted no matter which retry_count their request read. Returns
        False once the ceiling is reached (or the attempt was completed).
        """
        result = db.execute(
            update(self.model)
            .where(*self._pending(attempt))
            .values(retry_count=self.model.retry_count + 1, modified_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    def mark_completed(self, db: Session, attempt, now: datetime) -> bool:
        """Sets completed only while the attempt is still pending and under the retry ceiling."""
        result = db.execute(
            update(self.model)
            .where(*self._pending(attempt))
            .values(completed=True, modified_at=now)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1


# ── Flows ─────────────────────────────────────────────────────────────────────

def start_attempt(
    db: Session,
    repository: AttemptRepository,
    flow: str,
    email: str,
    now: Optional[datetime] = None,
    **fields,
):
    """
    Creates a new attempt and returns (attempt, raw_code).

    The caller sends the raw code by email; it is never stored.
    Raises:
      ConflictException          — an unfinished attempt for this email is still valid
      TooManyRequestsException   — 4 codes already issued in the last 24 hours
    """
    now = now or utcnow()
    email = normalize_email(email)

    if repository.find_active_by_email(db, email, now) is not None:
        raise ConflictException(
            f"{flow.capitalize()} for this email has already been started. "
            f"Please check your spam folder."
        )

    if is_rate_limited(repository.count_recent_by_email(db, email, now)):
        logger.warning(f"{flow} rate limit reached for {email}")
        raise TooManyRequestsException(
            f"Too many attempts to {flow} with this email address. Please try again later."
        )

    raw_code = generate_one_time_password()
    attempt = repository.model(
        email=email,
        one_time_password_hash=hash_one_time_password(raw_code),
        retry_count=0,
        resend_count=0,
        completed=False,
        created_at=now,
        last_sent_at=now,
        valid_until=now + timedelta(seconds=VALID_FOR_SECONDS),
        **fields,
    )
    repository.insert(db, attempt)
    db.commit()
    return attempt, raw_code


def complete_attempt(
    db: Session,
    repository: AttemptRepository,
    flow: str,
    attempt_id: uuid.UUID,
    code: str,
    now: Optional[datetime] = None,
):
    """
    Verifies a code and marks the attempt completed.

    On success the completed flag is written but NOT committed: the caller runs
    its provisioning in the same transaction and commits once. If provisioning
    fails the rollback also undoes completed, so the code can be tried again.

    A wrong code is committed straight away (retry_count + 1) before raising.
    """
    now = now or utcnow()
    attempt = repository.get(db, attempt_id)
    outcome = evaluate_attempt(attempt, code, now)

    if outcome in (VerificationOutcome.NOT_FOUND, VerificationOutcome.ALREADY_COMPLETED):
        raise NotFoundException(f"{flow.capitalize()} with id '{attempt_id}'")

    if outcome is VerificationOutcome.EXPIRED:
        logger.info(f"{flow} {attempt_id} submitted after expiry")
        raise InvalidOneTimePasswordException()

    if outcome is VerificationOutcome.EXHAUSTED:
        logger.info(f"{flow} {attempt_id} blocked after {attempt.retry_count} failed attempts")
        raise AttemptsExhaustedException()

    if outcome is VerificationOutcome.MISMATCH:
        counted = repository.register_wrong_code(db, attempt, now)
        db.commit()
        if not counted:
            db.refresh(attempt)
            if not attempt.completed and attempt.retry_count >= MAX_RETRY_COUNT:
                logger.info(f"{flow} {attempt_id} ran out of retries during concurrent submissions")
                raise AttemptsExhaustedException()
        raise InvalidOneTimePasswordException()

    if not repository.mark_completed(db, attempt, now):
        # The row changed after it was read: re-evaluate against what is stored now
        db.rollback()
        db.refresh(attempt)
        if attempt.completed:
            logger.warning(f"{flow} {attempt_id} was completed by a concurrent request")
            raise ConflictException(f"The {flow} has already been completed.")
        logger.info(f"{flow} {attempt_id} ran out of retries before the correct code was stored")
        raise AttemptsExhaustedException()

    return attempt


def resend_code(
    db: Session,
    repository: AttemptRepository,
    flow: str,
    attempt_id: uuid.UUID,
    now: Optional[datetime] = None,
):
    """
    Issues a fresh code for an existing attempt and returns (attempt, raw_code).
    The new code restarts the validity window and the retry budget.
    """
    now = now or utcnow()
    attempt = repository.get(db, attempt_id)

    if attempt is None or attempt.completed:
        raise NotFoundException(f"{flow.capitalize()} with id '{attempt_id}'")

    if now >= as_utc(attempt.valid_until):
        raise BadRequestException(f"The code is no longer valid, please start the {flow} again.")

    if seconds_until_resend_allowed(attempt.last_sent_at, now) > 0:
        raise ResendTooSoonException(RESEND_COOLDOWN_SECONDS)

    if is_rate_limited(repository.count_recent_by_email(db, attempt.email, now)):
        logger.warning(f"{flow} rate limit reached for {attempt.email} on resend")
        raise TooManyRequestsException(
            f"Too many attempts to {flow} with this email address. Please try again later."
        )

    raw_code = generate_one_time_password()
    if not repository.update_if_not_completed(
        db,
        attempt,
        attempt.retry_count,
        one_time_password_hash=hash_one_time_password(raw_code),
        retry_count=0,
        resend_count=attempt.resend_count + 1,
        last_sent_at=now,
        valid_until=now + timedelta(seconds=VALID_FOR_SECONDS),
        modified_at=now,
    ):
        db.rollback()
        raise ConflictException(f"The {flow} was changed by another request. Please try again.")

    db.commit()
    return attempt, raw_code
