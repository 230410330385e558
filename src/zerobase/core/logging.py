"""Structured logging with structlog over the standard library.

Request-scoped fields (``request_id``, ``method``, ``path`` and, behind the
access gate, ``project_id``) live in structlog contextvars and are merged into
every event logged while the request is handled.
"""

import logging
import sys

import structlog
from structlog.contextvars import bind_contextvars, clear_contextvars

# Chatty libraries only log warnings and above
_QUIET_LOGGERS = ("sqlalchemy.engine", "httpx", "httpcore", "google.auth")


def _renderer(debug: bool) -> structlog.typing.Processor:
    if debug:
        return structlog.dev.ConsoleRenderer(colors=True)
    return structlog.processors.JSONRenderer()


def setup_logging(debug: bool = False) -> None:
    """Configure structlog: coloured console output in debug, one JSON object per line otherwise."""
    logging.basicConfig(
        format="%(message)s",
        stream=sys.stdout,
        level=logging.DEBUG if debug else logging.INFO,
    )

    processors: list[structlog.typing.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_logger_name,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.StackInfoRenderer(),
    ]
    if not debug:
        # The console renderer prints tracebacks itself
        processors.append(structlog.processors.dict_tracebacks)
    processors += [structlog.processors.UnicodeDecoder(), _renderer(debug)]

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.stdlib.BoundLogger,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        cache_logger_on_first_use=True,
    )

    for name in _QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def get_logger(name: str | None = None) -> structlog.stdlib.BoundLogger:
    return structlog.get_logger(name)


def bind_request_context(
    request_id: str | None, method: str | None = None, path: str | None = None
) -> None:
    """Bind the correlation ID, and optionally the route, of the current request."""
    if request_id:
        bind_contextvars(request_id=request_id)
    if method and path:
        bind_contextvars(method=method, path=path)


def bind_project_context(project_id: str, access: str | None = None) -> None:
    """Bind the tenant a request was gated to.

    Args:
        project_id: The project the access gate resolved.
        access: Which gate rule admitted the request (e.g. ``"origin"``, ``"api_key"``).
    """
    bind_contextvars(project_id=project_id)
    if access:
        bind_contextvars(access=access)


def clear_request_context() -> None:
    clear_contextvars()
