"""Realtime channel: ``WS /ws?projectId=&apiKey=`` and registry stats.

The API key is checked once, at connect time. After that the client sends
``{"type": "subscribe" | "unsubscribe", "table": "<name>"}`` messages and
receives ``change`` events for its subscribed tables. Acks and events share the
connection's outbox, so they arrive in the order they were produced.
"""

import json
from typing import Any

from fastapi import APIRouter, WebSocket
from sqlalchemy.exc import SQLAlchemyError

from src.zerobase.api.dependencies import GatedProject, ProjectLookup, Realtime
from src.zerobase.core.logging import get_logger
from src.zerobase.core.security import verify_api_key
from src.zerobase.realtime import Subscriber
from src.zerobase.realtime.notifier import GOING_AWAY

logger = get_logger(__name__)

CLOSE_MISSING_PARAMS = 4001
CLOSE_INVALID_KEY = 4003
CLOSE_PROJECT_NOT_FOUND = 4004
CLOSE_AUTH_ERROR = 4500

router = APIRouter(prefix="/realtime", tags=["realtime"])
ws_router = APIRouter()


@router.get("/stats", summary="Realtime stats")
async def realtime_stats(access: GatedProject, notifier: Realtime) -> dict[str, Any]:
    """Open connections and subscribers per table, for the gated project only.

    Keyed by project id: ``{projectId: {connections, tables}}``.
    """
    return await notifier.stats(access.project_id)


def _parse_message(raw: str | bytes | None) -> tuple[str, str] | None:
    """``(type, table)`` from a client message, or None if it should be ignored."""
    if not raw:
        return None
    try:
        message = json.loads(raw)
    except (ValueError, UnicodeDecodeError):
        return None
    if not isinstance(message, dict):
        return None
    kind, table = message.get("type"), message.get("table")
    if kind not in ("subscribe", "unsubscribe") or not isinstance(table, str) or not table:
        return None
    return kind, table


@ws_router.websocket("/ws")
async def realtime_socket(websocket: WebSocket, notifier: Realtime, find: ProjectLookup) -> None:
    await websocket.accept()

    project_id = websocket.query_params.get("projectId")
    api_key = websocket.query_params.get("apiKey")
    if not project_id or not api_key:
        await websocket.close(CLOSE_MISSING_PARAMS, "Missing projectId or apiKey")
        return

    try:
        project = await find(project_id)
    except (SQLAlchemyError, OSError) as e:
        logger.warning("Realtime auth lookup failed", project_id=project_id, error=str(e))
        await websocket.close(CLOSE_AUTH_ERROR, "Auth error")
        return
    if project is None:
        await websocket.close(CLOSE_PROJECT_NOT_FOUND, "Project not found")
        return
    if not verify_api_key(api_key, project.api_key_hash):
        await websocket.close(CLOSE_INVALID_KEY, "Invalid API key")
        return

    if notifier.closed:
        await websocket.close(GOING_AWAY, "Server shutting down")
        return
    subscriber: Subscriber = await notifier.register(project.id, websocket)
    try:
        await notifier.send(subscriber, {"type": "connected", "projectId": project.id})
        while True:
            event = await websocket.receive()
            if event["type"] == "websocket.disconnect":
                break
            parsed = _parse_message(event.get("text") or event.get("bytes"))
            if parsed is None:
                continue
            kind, table = parsed
            if kind == "subscribe":
                await notifier.subscribe(subscriber, table)
                await notifier.send(subscriber, {"type": "subscribed", "table": table})
            else:
                await notifier.unsubscribe(subscriber, table)
                await notifier.send(subscriber, {"type": "unsubscribed", "table": table})
    finally:
        await notifier.unregister(subscriber)
