"""HTTP middleware stack for the FitHero API.

Outermost first: CORS, request id, rate limit; exception handlers sit
closest to the routes. Starlette wraps in reverse-add order, so the
registration below runs inside out.
"""

import structlog
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from fithero.config import Settings
from fithero.middleware.error_handler import setup_error_handlers
from fithero.middleware.logging import setup_logging
from fithero.middleware.rate_limit import RateLimitMiddleware
from fithero.middleware.request_id import RequestIdMiddleware

logger = structlog.get_logger()

CORS_ALLOWED_METHODS = ["GET", "POST", "PATCH", "DELETE", "OPTIONS"]
CORS_ALLOWED_HEADERS = ["Authorization", "Content-Type", "X-Request-Id", "X-Admin-Key"]
CORS_EXPOSED_HEADERS = ["X-Request-Id", "X-RateLimit-Remaining", "X-RateLimit-Limit"]


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Register logging, error handlers and the middleware chain.

    A non-positive ``rate_limit_requests`` turns rate limiting off.
    """
    setup_logging(settings)
    setup_error_handlers(app)

    rate_limited = settings.rate_limit_requests > 0
    if rate_limited:
        app.add_middleware(
            RateLimitMiddleware,
            requests_per_window=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
    app.add_middleware(RequestIdMiddleware)
    # Auth is a bearer header; no cookies cross origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=False,
        allow_methods=CORS_ALLOWED_METHODS,
        allow_headers=CORS_ALLOWED_HEADERS,
        expose_headers=CORS_EXPOSED_HEADERS,
    )

    logger.info(
        "middleware_configured",
        cors_origins=settings.cors_origins,
        rate_limited=rate_limited,
    )
