from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, DeclarativeBase
from sqlalchemy.pool import StaticPool
from account_management.config import settings


def _engine_options(url: str) -> dict:
    """
    Postgres gets a real connection pool. SQLite (local runs and the test suite)
    shares one connection across threads so an in-memory database survives
    between sessions.
    """
    if url.startswith("sqlite"):
        return {
            "connect_args": {"check_same_thread": False},
            "poolclass": StaticPool,
        }
    return {
        # pool_pre_ping=True: test every connection before using it.
        # Prevents "connection reset" errors after Postgres restarts or idle timeouts.
        "pool_pre_ping": True,
        "pool_size": 10,
        "max_overflow": 20,
    }


# ── Engine ────────────────────────────────────────────────────────────────────
engine = create_engine(settings.database_url, **_engine_options(settings.database_url))

# ── Session Factory ───────────────────────────────────────────────────────────
SessionLocal = sessionmaker(
    autocommit=False,   # commits are explicit: one commit per OTP operation
    autoflush=False,
    bind=engine,
)


# ── Declarative Base ──────────────────────────────────────────────────────────
class Base(DeclarativeBase):
    pass


# ── Dependency ────────────────────────────────────────────────────────────────
def get_db():
    """
    FastAPI dependency that yields a request-scoped session.
    Anything not committed when the request ends (an exception, a client
    disconnect) is rolled back by close(), so a half-applied attempt update
    never reaches the database.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
