from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import Optional


class Settings(BaseSettings):
    # ── Database ──────────────────────────────────────────────
    database_hostname: str = "localhost"
    database_port: str = "5432"
    database_password: str = ""
    database_name: str = "account_management"
    database_username: str = "postgres"
    # Full SQLAlchemy URL; when set it wins over the individual parts above
    database_url_override: Optional[str] = None

    # ── JWT ───────────────────────────────────────────────────
    secret_key: str
    algorithm: str = "HS256"
    access_token_expire_minutes: int = 5
    refresh_token_expire_days: int = 7

    # ── SMTP ──────────────────────────────────────────────────
    mail_username: str = ""
    mail_password: str = ""
    mail_from: str = "no-reply@localhost.dev"
    mail_from_name: str = "Account Management"
    mail_server: str = "localhost"
    mail_port: int = 587
    mail_starttls: bool = True
    mail_ssl_tls: bool = False
    # fastapi-mail skips the SMTP round-trip entirely when this is on
    mail_suppress_send: bool = False

    # ── App ───────────────────────────────────────────────────
    cors_origins: str = "http://localhost:9000"
    log_level: str = "INFO"
    rate_limit_enabled: bool = True

    @property
    def cors_origins_list(self) -> list[str]:
        """Split comma-separated origins into a list, stripping whitespace."""
        return [origin.strip() for origin in self.cors_origins.split(",")]

    @property
    def database_url(self) -> str:
        if self.database_url_override:
            return self.database_url_override
        return (
            f"postgresql://{self.database_username}:{self.database_password}"
            f"@{self.database_hostname}:{self.database_port}/{self.database_name}"
        )

    class Config:
        env_file = ".env"
        # Case-insensitive so SECRET_KEY and secret_key both work
        case_sensitive = False


@lru_cache()
def get_settings() -> Settings:
    """
    Cached settings loader — reads .env once and reuses.
    Use this everywhere instead of instantiating Settings() directly.
    """
    return Settings()


# Module-level singleton for convenience imports
settings = get_settings()
