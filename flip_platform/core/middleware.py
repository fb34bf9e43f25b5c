"""Request logging middleware."""

import time
import uuid
from typing import Any, Callable

import structlog
from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware

from flip_platform.core.logging import clear_log_context, log_context

# Liveness polling would otherwise dominate the request log
QUIET_PATHS = frozenset({"/api/health/live"})


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """Request logging with timing, correlation IDs and the admitted user.

    Runs outside the access checks, so the completion entry sees the
    profile the access middleware resolved and any login redirect it
    issued.
    """

    async def dispatch(
        self,
        request: Request,
        call_next: Callable[[Request], Response],
    ) -> Response:
        correlation_id = request.headers.get(
            "X-Correlation-ID",
            str(uuid.uuid4()),
        )
        request.state.correlation_id = correlation_id

        clear_log_context()
        log_context(
            correlation_id=correlation_id,
            method=request.method,
            path=request.url.path,
        )

        logger = structlog.get_logger("flip_platform.middleware")
        quiet = request.url.path in QUIET_PATHS
        start_time = time.perf_counter()
        if not quiet:
            logger.info("request_started")

        response = await call_next(request)

        duration_ms = (time.perf_counter() - start_time) * 1000
        fields: dict[str, Any] = {
            "status_code": response.status_code,
            "duration_ms": round(duration_ms, 2),
        }

        profile = getattr(request.state, "profile", None)
        if profile is not None:
            fields["auth_id"] = profile.auth_id
            fields["subscription_tier"] = profile.subscription_tier
        if 300 <= response.status_code < 400:
            fields["location"] = response.headers.get("location")

        if response.status_code >= 500:
            logger.error("request_completed", **fields)
        elif response.status_code >= 400:
            logger.warning("request_completed", **fields)
        elif quiet:
            logger.debug("request_completed", **fields)
        else:
            logger.info("request_completed", **fields)

        response.headers["X-Correlation-ID"] = correlation_id
        response.headers["X-Response-Time"] = f"{duration_ms:.2f}ms"

        return response
