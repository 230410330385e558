"""In-memory registry of realtime subscribers.

One ``RealtimeNotifier`` is created per process in the application lifespan and
stored on ``app.state.realtime``. It maps a project id to the live connections
of that project, each with its own set of subscribed table names. Nothing is
persisted: a restart drops every subscription and clients re-subscribe.

Every connection owns a bounded outbox drained by its own writer task, so
``broadcast`` only enqueues and never waits on a socket. A connection whose
send fails, times out, or whose outbox overflows is dropped and closed.
"""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Protocol

from fastapi.encoders import jsonable_encoder
from starlette.websockets import WebSocketDisconnect

from src.zerobase.core.logging import get_logger
from src.zerobase.models.base import epoch_ms

logger = get_logger(__name__)

GOING_AWAY = 1001
TRY_AGAIN_LATER = 1013

_SOCKET_ERRORS = (TimeoutError, WebSocketDisconnect, RuntimeError, OSError)


class RealtimeSocket(Protocol):
    """The part of a Starlette ``WebSocket`` the notifier uses."""

    async def send_json(self, data: Any, mode: str = "text") -> None: ...

    async def close(self, code: int = 1000, reason: str | None = None) -> None: ...


@dataclass(eq=False)
class Subscriber:
    project_id: str
    socket: RealtimeSocket
    outbox: asyncio.Queue[dict[str, Any]]
    tables: set[str] = field(default_factory=set)
    writer: asyncio.Task[None] | None = None


class RealtimeNotifier:
    """Fan-out of change events to subscribed connections.

    All registry access goes through these methods and is serialized by one
    lock. Sockets are only ever written by their subscriber's writer task.
    """

    def __init__(self, send_timeout: float = 5.0, max_pending: int = 100):
        self._projects: dict[str, set[Subscriber]] = {}
        self._lock = asyncio.Lock()
        self._send_timeout = send_timeout
        self._max_pending = max_pending
        self._evictions: set[asyncio.Task[None]] = set()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def register(self, project_id: str, socket: RealtimeSocket) -> Subscriber:
        subscriber = Subscriber(
            project_id=project_id,
            socket=socket,
            outbox=asyncio.Queue(maxsize=self._max_pending),
        )
        async with self._lock:
            if self._closed:
                raise RuntimeError("Realtime notifier is closed")
            self._projects.setdefault(project_id, set()).add(subscriber)
            subscriber.writer = asyncio.create_task(self._deliver(subscriber))
        logger.info("Realtime client connected", project_id=project_id)
        return subscriber

    async def unregister(self, subscriber: Subscriber) -> None:
        """Forget a connection and stop its writer. Safe to call more than once."""
        removed = await self._remove(subscriber)
        if subscriber.writer is not None and subscriber.writer is not asyncio.current_task():
            subscriber.writer.cancel()
        if removed:
            logger.info("Realtime client disconnected", project_id=subscriber.project_id)

    async def subscribe(self, subscriber: Subscriber, table: str) -> None:
        async with self._lock:
            subscriber.tables.add(table)

    async def unsubscribe(self, subscriber: Subscriber, table: str) -> None:
        async with self._lock:
            subscriber.tables.discard(table)

    async def send(self, subscriber: Subscriber, message: dict[str, Any]) -> bool:
        """Queue a message for one connection, behind anything already queued."""
        async with self._lock:
            registered = subscriber in self._projects.get(subscriber.project_id, ())
        return registered and self._enqueue(subscriber, jsonable_encoder(message))

    async def broadcast(self, project_id: str, table: str, event: str, data: Any) -> int:
        """Queue a change event for every connection of ``project_id`` subscribed to ``table``.

        Returns as soon as the event is queued. Delivery is best-effort: no ack
        and no replay.

        Returns:
            Number of connections the event was queued for.
        """
        async with self._lock:
            targets = [s for s in self._projects.get(project_id, ()) if table in s.tables]
        if not targets:
            return 0

        message = jsonable_encoder(
            {
                "type": "change",
                "event": event,
                "table": table,
                "data": data,
                "ts": epoch_ms(),
            }
        )
        return sum(self._enqueue(s, message) for s in targets)

    async def drain(self, timeout: float | None = None) -> bool:
        """Wait until every queued message has been sent or discarded, and every
        dropped client has been closed.

        Returns:
            False if ``timeout`` elapsed first.
        """
        async with self._lock:
            outboxes = [s.outbox for clients in self._projects.values() for s in clients]
        try:
            await asyncio.wait_for(asyncio.gather(*(o.join() for o in outboxes)), timeout)
        except TimeoutError:
            return False
        if self._evictions:
            await asyncio.gather(*self._evictions, return_exceptions=True)
        return True

    async def stats(self, project_id: str | None = None) -> dict[str, dict[str, Any]]:
        """Per project: connection count and subscriber count per table.

        With ``project_id``, only that project is reported (with zero counts when
        it has no connections).
        """
        async with self._lock:
            if project_id is not None:
                projects = {project_id: self._projects.get(project_id, set())}
            else:
                projects = self._projects
            stats: dict[str, dict[str, Any]] = {}
            for pid, clients in projects.items():
                tables: dict[str, int] = {}
                for client in clients:
                    for table in client.tables:
                        tables[table] = tables.get(table, 0) + 1
                stats[pid] = {"connections": len(clients), "tables": tables}
            return stats

    async def close(self) -> None:
        """Flush pending messages, then close every connection with 1001 (going away).

        Call during shutdown. Flushing is bounded by the send timeout.
        """
        if not await self.drain(self._send_timeout):
            logger.warning("Realtime shutdown with undelivered messages")

        async with self._lock:
            self._closed = True
            subscribers = [s for clients in self._projects.values() for s in clients]
            self._projects.clear()

        for subscriber in subscribers:
            if subscriber.writer is not None:
                subscriber.writer.cancel()
            await self._close_socket(subscriber, GOING_AWAY, "Server shutting down")
        if self._evictions:
            await asyncio.gather(*self._evictions, return_exceptions=True)
        logger.info("Realtime notifier closed", connections=len(subscribers))

    def _enqueue(self, subscriber: Subscriber, message: dict[str, Any]) -> bool:
        try:
            subscriber.outbox.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning(
                "Realtime client too slow, dropping",
                project_id=subscriber.project_id,
                pending=subscriber.outbox.qsize(),
            )
            task = asyncio.create_task(self._evict(subscriber))
            self._evictions.add(task)
            task.add_done_callback(self._evictions.discard)
            return False
        return True

    async def _deliver(self, subscriber: Subscriber) -> None:
        """Writer task: send queued messages in order until the socket fails."""
        outbox = subscriber.outbox
        try:
            while True:
                message = await outbox.get()
                try:
                    await asyncio.wait_for(
                        subscriber.socket.send_json(message), self._send_timeout
                    )
                except _SOCKET_ERRORS as e:
                    logger.warning(
                        "Realtime send failed, dropping client",
                        project_id=subscriber.project_id,
                        error=str(e) or type(e).__name__,
                    )
                    await self._remove(subscriber)
                    await self._close_socket(subscriber, TRY_AGAIN_LATER, "Send failed")
                    return
                finally:
                    outbox.task_done()
        finally:
            while not outbox.empty():
                outbox.get_nowait()
                outbox.task_done()

    async def _evict(self, subscriber: Subscriber) -> None:
        await self.unregister(subscriber)
        await self._close_socket(subscriber, TRY_AGAIN_LATER, "Client too slow")

    async def _remove(self, subscriber: Subscriber) -> bool:
        async with self._lock:
            clients = self._projects.get(subscriber.project_id)
            if clients is None or subscriber not in clients:
                return False
            clients.discard(subscriber)
            if not clients:
                del self._projects[subscriber.project_id]
            return True

    async def _close_socket(self, subscriber: Subscriber, code: int, reason: str) -> None:
        try:
            await asyncio.wait_for(
                subscriber.socket.close(code=code, reason=reason), self._send_timeout
            )
        except _SOCKET_ERRORS as e:
            logger.debug("Realtime socket already closed", error=str(e) or type(e).__name__)
