import uuid
from sqlalchemy import Column
from sqlalchemy.dialects.postgresql import UUID
from account_management.database import Base
from account_management.models.attempt import OneTimePasswordAttemptMixin


class Signup(OneTimePasswordAttemptMixin, Base):
    """
    A signup attempt. tenant_id is allocated when the signup starts and is used
    as the primary key of the Tenant created on successful verification.
    No foreign key: the tenant row does not exist until then.
    """
    __tablename__ = "signups"

    tenant_id = Column(UUID(as_uuid=True), nullable=False, default=uuid.uuid4)
