"""
Logging configuration.

Every module logs through logging.getLogger(__name__); this sets the format and
level once at startup.
"""
import logging
import sys

from account_management.config import settings


def setup_logging() -> None:
    level = getattr(logging, settings.log_level.upper(), logging.INFO)
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stdout,
    )

    # Silence noisy SQLAlchemy engine logs
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.pool").setLevel(logging.WARNING)
    # passlib complains about bcrypt's missing __about__ on every import
    logging.getLogger("passlib").setLevel(logging.ERROR)
