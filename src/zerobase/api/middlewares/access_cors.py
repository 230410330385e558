"""Per-project CORS echo decided by the access gate."""

from fastapi import Request, Response
from starlette.middleware.base import RequestResponseEndpoint


async def access_cors_middleware(request: Request, call_next: RequestResponseEndpoint) -> Response:
    """Echo the origin the access gate admitted, with credentials.

    Dashboard origins are covered by ``CORSMiddleware``; origins authorized on
    a single project only get headers on that project's requests.
    """
    response = await call_next(request)
    allow_origin = getattr(request.state, "allow_origin", None)
    if allow_origin:
        response.headers["Access-Control-Allow-Origin"] = allow_origin
        response.headers["Access-Control-Allow-Credentials"] = "true"
        response.headers["Vary"] = "Origin"
    return response
