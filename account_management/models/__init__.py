# models/__init__.py
# Import all models here so that:
# 1. Alembic's env.py can import this single module and detect all tables.
# 2. SQLAlchemy relationship() calls resolve correctly (all classes in same metadata).
# Order matters: models with no foreign keys first, then dependents.

from account_management.models.tenant import Tenant
from account_management.models.user import User
from account_management.models.signup import Signup
from account_management.models.login import Login

__all__ = [
    "Tenant",
    "User",
    "Signup",
    "Login",
]
