import uuid
from sqlalchemy import Boolean, Column, String, TIMESTAMP, ForeignKey, UniqueConstraint, Enum as SAEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from account_management.database import Base


class User(Base):
    __tablename__ = "users"
    # Email is unique inside a tenant, not globally
    __table_args__ = (UniqueConstraint("tenant_id", "email", name="uq_users_tenant_email"),)

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    tenant_id = Column(
        UUID(as_uuid=True),
        ForeignKey("tenants.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    email = Column(String(100), nullable=False, index=True)
    role = Column(
        SAEnum("owner", "admin", "member", name="user_role"),
        nullable=False,
        default="member",
        server_default="member",
    )
    email_confirmed = Column(Boolean, default=False, server_default="0", nullable=False)

    # Profile
    first_name = Column(String(30), nullable=True)
    last_name = Column(String(30), nullable=True)
    title = Column(String(50), nullable=True)
    locale = Column(String(10), nullable=False, default="en-US", server_default="en-US")

    # Timestamps
    last_seen_at = Column(TIMESTAMP(timezone=True), nullable=True)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    modified_at = Column(TIMESTAMP(timezone=True), nullable=True)

    # ── Relationships ──────────────────────────────────────────────────────────
    tenant = relationship("Tenant", back_populates="users")
    logins = relationship("Login", back_populates="user", cascade="all, delete-orphan")
