"""
Error types and FastAPI exception handlers.

Every error that reaches a caller carries a stable ``code`` and a short,
actionable ``message``, rendered as an RFC7807 problem document.
Provider status codes and bodies are only logged.
"""
from fastapi import Request
from starlette.exceptions import HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from typing import Any, Dict, Optional
import logging

# Configure logger
logger = logging.getLogger(__name__)


class PlaceImportException(Exception):
    """
    Root of the service's error hierarchy.

    Subclasses set ``status_code``, ``code``, ``title`` and a default
    ``detail`` as class attributes; any of them can be overridden per
    instance. Extra keyword arguments become extra response fields.
    """
    status_code: int = 500
    code: str = "INTERNAL_ERROR"
    detail: str = "An unexpected error occurred"
    error_type: str = "server_error"
    title: str = "Internal Server Error"
    headers: Optional[Dict[str, str]] = None

    def __init__(
        self,
        detail: Optional[str] = None,
        status_code: Optional[int] = None,
        code: Optional[str] = None,
        title: Optional[str] = None,
        headers: Optional[Dict[str, str]] = None,
        **kwargs
    ):
        self.detail = detail or self.detail
        self.status_code = status_code or self.status_code
        self.code = code or self.code
        self.title = title or self.title
        self.headers = {"Content-Type": "application/problem+json", **(headers or self.headers or {})}
        self.extra = kwargs
        super().__init__(self.detail)

    @property
    def message(self) -> str:
        """The user-facing message."""
        return self.detail

    def to_dict(self) -> Dict[str, Any]:
        """
        Response body: ``{code, message}`` plus RFC7807 fields and extras.
        """
        return {
            "code": self.code,
            "message": self.detail,
            "type": f"https://placeimport.dev/problems/{self.error_type}",
            "title": self.title,
            "status": self.status_code,
            "detail": self.detail,
            **self.extra,
        }


# 400 Bad Request

class InvalidInputError(PlaceImportException):
    """The query is missing, empty or otherwise unusable."""
    status_code = 400
    code = "INVALID_INPUT"
    detail = "A query is required. Paste a Google Maps link, a place name or an address."
    error_type = "invalid_input"
    title = "Bad Request"


# 401 Unauthorized

class AuthenticationError(PlaceImportException):
    """No session token, or the token was rejected."""
    status_code = 401
    code = "UNAUTHORIZED"
    detail = "Sign in to import places."
    error_type = "authentication_error"
    title = "Unauthorized"

    def __init__(self, *args, **kwargs):
        """Always advertise the bearer scheme."""
        super().__init__(*args, **kwargs)
        self.headers["WWW-Authenticate"] = "Bearer"


# 404 Not Found

class PlaceNotFoundError(PlaceImportException):
    """Every resolution strategy was exhausted without finding a place."""
    status_code = 404
    code = "PLACE_NOT_FOUND"
    detail = "Could not find place. Please check the address or place name and try again."
    error_type = "place_not_found"
    title = "Not Found"

    URL_MESSAGE = (
        "Could not find place from URL. Please make sure the Google Maps link is correct "
        "and try copying it directly from Google Maps."
    )
    TEXT_MESSAGE = (
        "Could not find place. Try including the city name (e.g. 'Cafe Central, Vienna'), "
        "using a Google Maps link instead, or checking the spelling."
    )

    @classmethod
    def for_query(cls, from_url: bool) -> "PlaceNotFoundError":
        """Build the error with guidance matching the kind of input."""
        return cls(
            detail=cls.URL_MESSAGE if from_url else cls.TEXT_MESSAGE,
            source="url" if from_url else "text"
        )


# 429 Too Many Requests

class RateLimitExceededError(PlaceImportException):
    """The user used up the current rate limit window."""
    status_code = 429
    code = "RATE_LIMITED"
    detail = "Rate limit exceeded. Please try again in a minute."
    error_type = "rate_limit_exceeded"
    title = "Too Many Requests"


# 5xx

class UnconfiguredError(PlaceImportException):
    """Provider credentials are missing; nothing can be resolved."""
    status_code = 500
    code = "UNCONFIGURED"
    detail = "Google Maps API key is not configured. Set GOOGLE_MAPS_API_KEY and restart the service."
    error_type = "unconfigured"
    title = "Internal Server Error"


class ProviderError(PlaceImportException):
    """The place details provider failed for this call."""
    status_code = 502
    code = "PROVIDER_ERROR"
    detail = "Google Places is not responding as expected. Please try again."
    error_type = "provider_error"
    title = "Bad Gateway"


class ProviderRequestError(Exception):
    """
    A single provider request failed.

    Raised by the Places client for one search, geocode or details
    attempt. Resolvers catch it and move on to the next attempt; the
    details step converts it into a ProviderError.
    """

    def __init__(self, message: str, status_code: Optional[int] = None, body: Any = None):
        self.status_code = status_code
        self.body = body
        super().__init__(message)


# Exception handlers

PROBLEM_CONTENT_TYPE = "application/problem+json"

# Status codes raised by the framework itself (routing, methods)
HTTP_ERROR_CODES = {
    400: ("INVALID_INPUT", "Bad Request"),
    401: ("UNAUTHORIZED", "Unauthorized"),
    404: ("NOT_FOUND", "Not Found"),
    405: ("METHOD_NOT_ALLOWED", "Method Not Allowed"),
    429: ("RATE_LIMITED", "Too Many Requests"),
    500: ("INTERNAL_ERROR", "Internal Server Error"),
}


def _problem_response(
    status_code: int,
    content: Dict[str, Any],
    headers: Optional[Dict[str, str]] = None
) -> JSONResponse:
    headers = dict(headers or {})
    headers.setdefault("Content-Type", PROBLEM_CONTENT_TYPE)
    return JSONResponse(status_code=status_code, content=content, headers=headers)


async def place_import_exception_handler(
    request: Request,
    exc: PlaceImportException
) -> JSONResponse:
    """Render a PlaceImportException; 5xx are logged as errors."""
    log = logger.error if exc.status_code >= 500 else logger.warning
    log(
        f"{exc.code}: {exc.detail}",
        extra={"status_code": exc.status_code, "code": exc.code, "path": request.url.path}
    )
    return _problem_response(exc.status_code, exc.to_dict(), exc.headers)


async def http_exception_handler(
    request: Request,
    exc: HTTPException
) -> JSONResponse:
    """Render framework HTTP errors (unknown route, wrong method) in the same shape."""
    code, title = HTTP_ERROR_CODES.get(
        exc.status_code, ("HTTP_ERROR", f"HTTP Error {exc.status_code}")
    )
    message = str(exc.detail)

    logger.warning(
        f"HTTP {exc.status_code}: {message}",
        extra={"status_code": exc.status_code, "path": request.url.path}
    )
    return _problem_response(
        exc.status_code,
        {
            "code": code,
            "message": message,
            "type": f"https://placeimport.dev/problems/{code.lower()}",
            "title": title,
            "status": exc.status_code,
            "detail": message,
        },
        exc.headers,
    )


async def validation_exception_handler(
    request: Request,
    exc: RequestValidationError
) -> JSONResponse:
    """Unparseable or mistyped request bodies are INVALID_INPUT."""
    logger.warning(
        "Request validation failed",
        extra={"path": request.url.path, "errors": str(exc.errors())[:500]}
    )
    error = InvalidInputError()
    return _problem_response(error.status_code, error.to_dict(), error.headers)


async def unhandled_exception_handler(
    request: Request,
    exc: Exception
) -> JSONResponse:
    """Last resort: log the traceback, return a generic 500."""
    logger.exception(
        f"Unhandled exception: {exc}",
        extra={"path": request.url.path}
    )
    return _problem_response(500, PlaceImportException().to_dict())


def configure_exception_handlers(app):
    """
    Register the handlers on a FastAPI application.

    Args:
        app: The FastAPI application
    """
    app.add_exception_handler(PlaceImportException, place_import_exception_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)
