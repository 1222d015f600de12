import uuid
from sqlalchemy import Boolean, Column, Index, Integer, String, TIMESTAMP
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import declared_attr
from sqlalchemy.sql import func


class OneTimePasswordAttemptMixin:
    """
    Columns shared by every one-time-password attempt (signups and logins).

    Security / lifecycle notes:
    - Raw codes are NEVER stored — only the bcrypt hash.
    - Rows are never deleted. Completed and expired rows stay behind because
      the 24-hour rate limit counts them.
    - retry_count is bumped on every wrong code; at 3 the row only accepts a
      resend. The increment and the completion are conditional UPDATEs, so
      concurrent submissions can neither skip a retry nor both complete.
    - valid_until is always last_sent_at + 300 seconds.
    """
    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    email = Column(String(100), nullable=False)
    one_time_password_hash = Column(String, nullable=False)
    retry_count = Column(Integer, nullable=False, default=0, server_default="0")
    resend_count = Column(Integer, nullable=False, default=0, server_default="0")
    completed = Column(Boolean, nullable=False, default=False, server_default="0")
    last_sent_at = Column(TIMESTAMP(timezone=True), nullable=False)
    valid_until = Column(TIMESTAMP(timezone=True), nullable=False)
    created_at = Column(
        TIMESTAMP(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    modified_at = Column(TIMESTAMP(timezone=True), nullable=True)

    @declared_attr.directive
    def __table_args__(cls):
        # The pending-attempt lookup and the 24-hour count both filter on email, then created_at
        return (Index(f"ix_{cls.__tablename__}_email_created_at", "email", "created_at"),)
