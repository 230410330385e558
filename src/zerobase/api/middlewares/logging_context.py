"""Per-request structlog context."""

from asgi_correlation_id import correlation_id
from fastapi import Request, Response
from starlette.middleware.base import RequestResponseEndpoint

from src.zerobase.core.logging import bind_request_context, clear_request_context


async def logging_context_middleware(
    request: Request, call_next: RequestResponseEndpoint
) -> Response:
    """Bind the correlation id, method and path for the duration of one request.

    Access-gated routes add ``project_id`` on top once the gate has run.
    """
    clear_request_context()
    bind_request_context(correlation_id.get(), request.method, request.url.path)
    try:
        return await call_next(request)
    finally:
        clear_request_context()
