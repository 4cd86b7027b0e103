"""
HTTP middleware stack.

Order, outermost first: request id, request logging, security headers,
CORS. Request bodies and query strings are never logged since they carry
user queries and session tokens.
"""
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware
import time
import logging
from typing import Callable, Optional

from place_import.core.config import get_settings, Settings
from place_import.core.request_id_middleware import RequestIDMiddleware


# Configure logger
logger = logging.getLogger(__name__)

SECURITY_HEADERS = {
    "X-Content-Type-Options": "nosniff",
    "X-Frame-Options": "DENY",
    "Referrer-Policy": "strict-origin-when-cross-origin",
}
HSTS_HEADER = "max-age=31536000; includeSubDomains"


def _elapsed_ms(started: float) -> float:
    return round((time.time() - started) * 1000, 2)


class RequestLoggingMiddleware(BaseHTTPMiddleware):
    """
    One log line per finished request: method, path, status, user, timing.

    Also sets ``X-Process-Time`` (seconds) on the response.
    """

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        started = time.time()
        context = {"method": request.method, "path": request.url.path}

        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Request failed", extra={**context, "process_time_ms": _elapsed_ms(started)})
            raise

        response.headers["X-Process-Time"] = f"{time.time() - started:.4f}"
        logger.info(
            "Request completed",
            extra={
                **context,
                "status_code": response.status_code,
                "user_id": getattr(request.state, "user_id", None),
                "process_time_ms": _elapsed_ms(started),
            }
        )
        return response


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Static hardening headers; HSTS only in production."""

    def __init__(self, app, production: bool = False):
        super().__init__(app)
        self.production = production

    async def dispatch(
        self, request: Request, call_next: Callable
    ) -> Response:
        response = await call_next(request)
        response.headers.update(SECURITY_HEADERS)
        if self.production:
            response.headers["Strict-Transport-Security"] = HSTS_HEADER
        return response


def setup_middleware(app: FastAPI, settings: Optional[Settings] = None) -> None:
    """
    Install the middleware stack on ``app``.

    Starlette runs the middleware added last first, so the request id is
    bound before anything logs.
    """
    settings = settings or get_settings()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=settings.CORS_METHODS,
        allow_headers=settings.CORS_HEADERS,
    )
    app.add_middleware(SecurityHeadersMiddleware, production=settings.ENVIRONMENT == "production")
    app.add_middleware(RequestLoggingMiddleware)
    app.add_middleware(RequestIDMiddleware)
