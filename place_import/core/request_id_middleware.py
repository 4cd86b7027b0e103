"""
Request ID Middleware for tracking requests across the system.

Every request gets an id, taken from the client's X-Request-ID header or
generated. The id is echoed in the response and bound to every log line
written while the request is handled.
"""
import uuid
from starlette.middleware.base import BaseHTTPMiddleware
from fastapi import Request, Response
from typing import Callable

from place_import.core.logging_config import RequestLogger

MAX_REQUEST_ID_LENGTH = 128


class RequestIDMiddleware(BaseHTTPMiddleware):
    """
    Middleware that adds a unique request ID to each request.
    """

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        request_id = request_id[:MAX_REQUEST_ID_LENGTH]

        request.state.request_id = request_id

        with RequestLogger(request_id):
            response = await call_next(request)

        response.headers["X-Request-ID"] = request_id
        return response
