"""
Logging setup.

Production runs log one JSON object per line (python-json-logger) so the
platform's log collector can index ``request_id``, ``user_id`` and the
``extra`` fields passed at each call site. Local runs can use plain text.
"""
import contextvars
import logging
import sys
from typing import Any, Dict, Optional, TextIO
from pythonjsonlogger import jsonlogger

_request_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("request_id", default=None)
_user_id: contextvars.ContextVar[Optional[str]] = contextvars.ContextVar("user_id", default=None)

# Third-party loggers that are too chatty at INFO
QUIET_LOGGERS = ("uvicorn.access", "httpx", "httpcore")

TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


class CustomJsonFormatter(jsonlogger.JsonFormatter):
    """
    JSON formatter that stamps level, logger name and the bound request context.
    """

    def add_fields(
        self,
        log_record: Dict[str, Any],
        record: logging.LogRecord,
        message_dict: Dict[str, Any]
    ) -> None:
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = self.formatTime(record, self.datefmt)
        log_record['level'] = record.levelname
        log_record['logger'] = record.name

        # extra={"request_id": ...} at the call site wins over the bound context
        for field, variable in (("request_id", _request_id), ("user_id", _user_id)):
            value = getattr(record, field, None) or variable.get()
            if value:
                log_record[field] = value


def _build_formatter(log_format: str) -> logging.Formatter:
    if log_format.lower() != "json":
        return logging.Formatter(fmt=TEXT_FORMAT, datefmt="%H:%M:%S")
    return CustomJsonFormatter(
        fmt='%(timestamp)s %(level)s %(logger)s %(message)s',
        rename_fields={'timestamp': '@timestamp', 'level': 'severity', 'logger': 'logger_name'}
    )


def setup_structured_logging(
    level: str = "INFO",
    log_format: str = "json",
    stream: Optional[TextIO] = None
) -> None:
    """
    Replace the root handlers with a single stream handler.

    Args:
        level: Root level name, e.g. ``"INFO"``; unknown names fall back to INFO
        log_format: ``"json"`` or ``"text"``
        stream: Output stream, stdout when omitted
    """
    handler = logging.StreamHandler(stream or sys.stdout)
    handler.setFormatter(_build_formatter(log_format))

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(getattr(logging, level.upper(), logging.INFO))

    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_user_id(user_id: Optional[str]) -> None:
    """
    Attach ``user_id`` to log lines for the rest of the current context.

    Inside a RequestLogger block the value is cleared when the block exits.
    """
    _user_id.set(user_id)


def truncate_for_log(value: Optional[str], limit: int = 100) -> Optional[str]:
    """Shorten user input before it is written to a log line."""
    if value is None:
        return None
    return value if len(value) <= limit else value[:limit]


class RequestLogger:
    """
    Bind a request id (and optionally a user id) to every log line
    written inside the ``with`` block.

    The ids live in context variables, so concurrent requests on the
    same event loop never see each other's values.
    """

    def __init__(self, request_id: str, user_id: Optional[str] = None):
        self.request_id = request_id
        self.user_id = user_id
        self._tokens = []

    def __enter__(self):
        self._tokens = [
            (_request_id, _request_id.set(self.request_id)),
            (_user_id, _user_id.set(self.user_id)),
        ]
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        while self._tokens:
            variable, token = self._tokens.pop()
            variable.reset(token)
