"""Access-gate dependencies for project-scoped routes."""

import json
from typing import Annotated

from fastapi import Depends, Header, Request

from src.zerobase.api.dependencies.services import AccessGateDep
from src.zerobase.core.exceptions import InvalidTokenError, UnauthorizedError
from src.zerobase.core.logging import bind_project_context
from src.zerobase.core.security import verify_session_token
from src.zerobase.services.access_gate import AccessDecision, extract_api_key

PROJECT_ID_FIELD = "projectId"


async def resolve_project_id(request: Request) -> str | None:
    """First non-empty of: path parameter, query parameter, JSON body field."""
    for source in (request.path_params, request.query_params):
        value = source.get(PROJECT_ID_FIELD)
        if value:
            return str(value)

    if "application/json" not in request.headers.get("content-type", ""):
        return None
    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError):
        return None
    if isinstance(body, dict):
        value = body.get(PROJECT_ID_FIELD)
        if isinstance(value, str) and value:
            return value
    return None


async def get_access_decision(
    request: Request,
    gate: AccessGateDep,
    x_api_key: Annotated[str | None, Header()] = None,
    authorization: Annotated[str | None, Header()] = None,
) -> AccessDecision:
    """Run the access gate for a project-scoped request.

    The origin to echo is left on ``request.state``; the access CORS middleware
    applies it to the response, error responses included.
    """
    decision = await gate.check(
        await resolve_project_id(request),
        request.headers.get("origin"),
        extract_api_key(x_api_key, authorization),
    )
    request.state.allow_origin = decision.allow_origin
    bind_project_context(decision.project_id, decision.rule.value)
    return decision


GatedProject = Annotated[AccessDecision, Depends(get_access_decision)]


async def get_session_user_id(
    decision: GatedProject,
    authorization: Annotated[str | None, Header()] = None,
) -> int:
    """User id from an ``Authorization: Bearer <session token>`` minted for this project."""
    if not authorization or not authorization.startswith("Bearer "):
        raise UnauthorizedError("Missing or invalid authorization header")
    user_id = verify_session_token(authorization[7:], decision.project_id)
    try:
        return int(user_id)
    except ValueError as e:
        raise InvalidTokenError("Invalid token payload") from e


SessionUserId = Annotated[int, Depends(get_session_user_id)]
