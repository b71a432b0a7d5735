"""Sentry integration for error tracking."""
from __future__ import annotations

import logging
import os
from typing import Any

import sentry_sdk
from sentry_sdk.integrations.logging import LoggingIntegration

logger = logging.getLogger(__name__)

_initialized = False


def init_sentry(
    dsn: str | None,
    environment: str = "production",
    enable_logging: bool = True,
    sample_rate: float = 1.0,
    traces_sample_rate: float = 0.0,
) -> bool:
    """Initialize Sentry error tracking.

    Args:
        dsn: Project DSN; tracking stays disabled when empty
        environment: Environment name (production, staging, development)
        enable_logging: Turn ERROR log records into Sentry events
        sample_rate: Error sampling rate (1.0 = 100%)
        traces_sample_rate: Performance tracing rate

    Returns:
        True if Sentry was initialized
    """
    global _initialized

    if not dsn:
        logger.info("SENTRY_DSN not set - error tracking disabled")
        return False

    integrations = []
    if enable_logging:
        integrations.append(
            LoggingIntegration(
                level=logging.INFO,  # breadcrumbs
                event_level=logging.ERROR,
            )
        )

    try:
        sentry_sdk.init(
            dsn=dsn,
            environment=environment,
            integrations=integrations,
            sample_rate=sample_rate,
            traces_sample_rate=traces_sample_rate,
            send_default_pii=False,
            release=os.getenv("GIT_COMMIT_SHA", "unknown"),
        )
    except Exception as e:
        logger.error(f"Failed to initialize Sentry: {e}")
        return False

    _initialized = True
    logger.info(f"Sentry initialized for {environment} environment")
    return True


def capture_exception(error: BaseException, **extra: Any) -> None:
    """Send an exception to Sentry with additional context."""
    if not _initialized:
        return

    with sentry_sdk.new_scope() as scope:
        for key, value in extra.items():
            scope.set_context(key, value)
        sentry_sdk.capture_exception(error)


def add_breadcrumb(message: str, category: str = "default", level: str = "info", **data: Any) -> None:
    """Add breadcrumb for debugging context."""
    if not _initialized:
        return

    sentry_sdk.add_breadcrumb(message=message, category=category, level=level, data=data)
