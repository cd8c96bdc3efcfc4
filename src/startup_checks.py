"""Startup validation — catch misconfigurations before the app serves traffic."""
from __future__ import annotations

import logging
import sys

from config.settings import settings
from src.services.story_policy import RULES

logger = logging.getLogger(__name__)

DEFAULT_JWT_SECRET = "taleshelf-dev-secret-change-in-prod"


def validate_settings() -> list[str]:
    """Validate configuration. Returns list of warnings (empty = all good).

    Raises SystemExit for critical misconfigurations.
    """
    warnings: list[str] = []
    is_prod = settings.DATABASE_URL and "sqlite" not in settings.DATABASE_URL

    # Critical: JWT secret must be changed in production
    if is_prod and settings.JWT_SECRET == DEFAULT_JWT_SECRET:
        logger.critical("JWT_SECRET is still the default! Set a real secret for production.")
        sys.exit(1)

    if settings.STORY_POLICY not in RULES:
        logger.critical("Unknown STORY_POLICY %r; expected one of %s", settings.STORY_POLICY, sorted(RULES))
        sys.exit(1)

    if is_prod and "*" in settings.CORS_ORIGINS:
        warnings.append("CORS_ORIGINS is set to * — restrict in production")

    if settings.LOGIN_RATE_LIMIT < 1:
        warnings.append("LOGIN_RATE_LIMIT below 1 — every login attempt will be rejected")

    for w in warnings:
        logger.warning("%s", w)

    if not warnings:
        logger.info("All startup checks passed")

    return warnings
