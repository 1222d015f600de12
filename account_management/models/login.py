from sqlalchemy import Column, ForeignKey
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from account_management.database import Base
from account_management.models.attempt import OneTimePasswordAttemptMixin


class Login(OneTimePasswordAttemptMixin, Base):
    """A login attempt for an existing user."""
    __tablename__ = "logins"

    user_id = Column(
        UUID(as_uuid=True),
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    tenant_id = Column(
        UUID(as_uuid=True),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
    )

    # ── Relationships ──────────────────────────────────────────────────────────
    user = relationship("User", back_populates="logins")
