"""Taleshelf API — FastAPI application for story sharing and moderation."""
from __future__ import annotations

import logging

from src.logging_config import setup_logging
setup_logging()
from contextlib import asynccontextmanager

from fastapi import FastAPI, Depends, HTTPException
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from src.db.engine import engine, get_session
from src.db.tables import Base
from config.settings import settings

# ── Sentry Error Tracking ────────────────────────
if settings.SENTRY_DSN:
    import sentry_sdk
    from sentry_sdk.integrations.fastapi import FastApiIntegration
    from sentry_sdk.integrations.sqlalchemy import SqlalchemyIntegration
    from sentry_sdk.integrations.logging import LoggingIntegration

    sentry_sdk.init(
        dsn=settings.SENTRY_DSN,
        environment=settings.SENTRY_ENVIRONMENT,
        traces_sample_rate=settings.SENTRY_TRACES_SAMPLE_RATE,
        integrations=[
            FastApiIntegration(),
            SqlalchemyIntegration(),
            LoggingIntegration(level=logging.WARNING, event_level=logging.ERROR),
        ],
        # Scrub sensitive data
        send_default_pii=False,
        before_send=lambda event, hint: (
            {**event, "request": {**event.get("request", {}), "cookies": None}}
            if "request" in event else event
        ),
    )

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Validate configuration and create tables on startup."""
    from src.startup_checks import validate_settings
    validate_settings()

    # Import all tables so they're registered with Base.metadata
    import src.db.user_tables  # noqa: F401
    import src.db.comment_tables  # noqa: F401
    import src.db.report_tables  # noqa: F401
    import src.db.rating_tables  # noqa: F401
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    logger.info("Database tables ready")

    yield

    logger.info("Shutting down — draining connections...")
    await engine.dispose()
    logger.info("Shutdown complete")


app = FastAPI(
    title="Taleshelf API",
    version=VERSION,
    description="Story sharing API with reader reports and moderated tagging",
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Security headers, outermost layer
from src.middleware.security_headers import SecurityHeadersMiddleware
app.add_middleware(SecurityHeadersMiddleware)

# Request ID tracing
from src.middleware.request_id import RequestIDMiddleware
app.add_middleware(RequestIDMiddleware)

# Rate limiting middleware
from src.middleware.rate_limit import RateLimitMiddleware
app.add_middleware(RateLimitMiddleware)


# ---- Auth routes ----
from src.auth import LoginRequest, issue_token, revoke_token, require_token, verify_password
from src.db.user_tables import UserRow, AccessTokenRow


@app.post("/moderator/login")
async def login(req: LoginRequest, session: AsyncSession = Depends(get_session)):
    """Exchange moderator credentials for a bearer token."""
    result = await session.execute(select(UserRow).where(UserRow.email == req.email))
    user = result.scalar_one_or_none()
    if not user or not verify_password(req.password, user.password_hash):
        logger.info("Failed login for %s", req.email)
        raise HTTPException(401, "Invalid login credentials.")
    if not user.is_staff:
        logger.info("Rejected non-staff login for user %s", user.id)
        raise HTTPException(401, "Unauthorized: User is not a moderator")

    token = await issue_token(session, user)
    logger.info("Moderator %s logged in", user.id)
    return {"token": token, "name": user.name, "message": "Login successful!"}


@app.post("/logout")
async def logout(
    token: AccessTokenRow = Depends(require_token),
    session: AsyncSession = Depends(get_session),
):
    """Revoke the bearer token used for this request."""
    user_id = token.user_id
    await revoke_token(session, token)
    logger.info("User %s logged out", user_id)
    return {"message": "Logged out successfully"}


from src.api.categories import router as categories_router
app.include_router(categories_router)

from src.api.tags import router as tags_router
app.include_router(tags_router)

from src.api.stories import router as stories_router
app.include_router(stories_router)

from src.api.comments import router as comments_router
app.include_router(comments_router)

from src.api.ratings import router as ratings_router
app.include_router(ratings_router)

from src.api.reports import router as reports_router
app.include_router(reports_router)

from src.api.moderator import router as moderator_router
app.include_router(moderator_router)


@app.get("/health")
async def health(session: AsyncSession = Depends(get_session)):
    """Deep health check — validates DB connectivity."""
    try:
        from sqlalchemy import text
        await session.execute(text("SELECT 1"))
        db_status = "connected"
    except Exception:
        logger.warning("Health check could not reach the database", exc_info=True)
        db_status = "error"
    status = "ok" if db_status == "connected" else "degraded"
    return {"status": status, "db": db_status, "version": VERSION}


# --- Structured Error Responses ---

from fastapi import Request as FastAPIRequest
from fastapi.responses import JSONResponse
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

from src.api.validation import errors_by_field


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: FastAPIRequest, exc: RequestValidationError):
    """Field-keyed validation errors, shared by pydantic and database checks."""
    return JSONResponse(status_code=422, content={
        "message": "The given data was invalid.",
        "errors": errors_by_field(exc),
    })


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: FastAPIRequest, exc: StarletteHTTPException):
    """Consistent error envelope for all HTTP errors."""
    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.detail if isinstance(exc.detail, str) else "error",
            "message": exc.detail,
        },
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: FastAPIRequest, exc: Exception):
    """Catch-all for unhandled exceptions — never leak stack traces."""
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={
        "error": "internal_error",
        "message": "Something went wrong. Please try again.",
    })
