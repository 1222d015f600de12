import uuid
from sqlalchemy import Column, String, TIMESTAMP, Enum as SAEnum
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from account_management.database import Base


class Tenant(Base):
    """
    An isolated customer account.

    Created exactly once, by the signup flow, when a signup code is verified.
    The id is allocated up front when the signup starts (Signup.tenant_id), so
    the tenant and its signup row share the same identifier.
    """
    __tablename__ = "tenants"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4, nullable=False)
    name = Column(String(30), nullable=False, default="", server_default="")
    state = Column(
        SAEnum("trial", "active", "suspended", name="tenant_state"),
        nullable=False,
        default="trial",
        server_default="trial",
    )
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, server_default=func.now())
    modified_at = Column(TIMESTAMP(timezone=True), nullable=True)

    # ── Relationships ──────────────────────────────────────────────────────────
    users = relationship("User", back_populates="tenant", cascade="all, delete-orphan")
