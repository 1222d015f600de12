"""
Application entry point.

Run locally:
    uvicorn account_management.main:app --reload --port 8000

API docs available at:
    http://localhost:8000/docs   (Swagger UI)
    http://localhost:8000/redoc  (ReDoc)
"""
import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from account_management.config import settings
from account_management.core.logging import setup_logging
from account_management.core.rate_limiter import limiter
from account_management.routers import auth, logins, signups, tenants, users

logger = logging.getLogger(__name__)

API_PREFIX = "/api/account-management"


def _field_name(loc: tuple) -> str:
    # ("body", "email") → "email"; a whole-body error keeps "body"
    parts = [str(part) for part in loc if part not in ("body", "query", "path")]
    return ".".join(parts) or str(loc[0])


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Pydantic validation errors become 400 with one entry per field, so a
    malformed email or code is rejected before the handler runs at all.
    """
    errors = []
    for error in exc.errors():
        ctx_error = (error.get("ctx") or {}).get("error")
        errors.append({
            "field": _field_name(error.get("loc", ())),
            "message": str(ctx_error) if ctx_error else error.get("msg"),
        })
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "Validation failed", "errors": errors},
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"detail": "An unexpected error occurred."},
    )


def create_app() -> FastAPI:
    setup_logging()

    app = FastAPI(
        title="Account Management API",
        description=(
            "Tenant and user administration for a multi-tenant SaaS platform, "
            "with passwordless signup and login through emailed one-time codes."
        ),
        version="1.0.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )

    # ── Rate Limiter ──────────────────────────────────────────────────────────
    # Attach limiter to app state (required by slowapi)
    # Register the 429 handler so exceeded limits return proper JSON
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

    # ── Error Handling ────────────────────────────────────────────────────────
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    # ── CORS ──────────────────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # ── Routers ───────────────────────────────────────────────────────────────
    # Signups, logins and refresh are public; tenants and users require a token
    app.include_router(signups.router, prefix=f"{API_PREFIX}/signups", tags=["Signups"])
    app.include_router(logins.router, prefix=f"{API_PREFIX}/logins", tags=["Logins"])
    app.include_router(auth.router, prefix=f"{API_PREFIX}/authentication", tags=["Authentication"])
    app.include_router(tenants.router, prefix=f"{API_PREFIX}/tenants", tags=["Tenants"])
    app.include_router(users.router, prefix=f"{API_PREFIX}/users", tags=["Users"])

    # ── Health Check ──────────────────────────────────────────────────────────
    @app.get("/health", tags=["Health"])
    def health_check():
        """
        Simple health check endpoint for load balancers and Docker health checks.
        Returns 200 if the application is running.
        """
        return {"status": "ok", "version": "1.0.0"}

    return app


app = create_app()
