"""
sessiontrack.realtime
=====================

Real-time delivery of direct messages, typing indicators and
notifications.  Every authenticated WebSocket connection joins the room
of its user; the REST handlers push events into those rooms through the
module level :data:`hub`.

REST handlers run in worker threads while each connection belongs to the
event loop that accepted it, so the hub remembers that loop and schedules
sends on it.  Events for users without a live connection are dropped;
persistent copies live in the ``messages`` and ``notifications`` tables.

Frames are JSON objects of the form ``{"event": name, "data": {...}}``.
"""

import asyncio
import datetime as dt
import json
import logging
import threading

from fastapi import WebSocket, WebSocketDisconnect
from starlette.concurrency import run_in_threadpool

from sessiontrack.auth import get_user_by_token
from sessiontrack.db import SessionLocal, safe_commit
from sessiontrack.db import models
from sessiontrack.utils import clean_text

logger = logging.getLogger(__name__)

# Close code sent to connections without a valid token
WS_UNAUTHORIZED = 4401


class RoomHub:
    """Map of user id -> live connections."""

    def __init__(self):
        self._rooms: dict[int, set[tuple[WebSocket, asyncio.AbstractEventLoop]]] = {}
        self._lock = threading.Lock()

    def join(self, room: int, websocket: WebSocket) -> None:
        loop = asyncio.get_running_loop()
        with self._lock:
            self._rooms.setdefault(room, set()).add((websocket, loop))
        logger.info("User %s joined their room", room)

    def leave(self, room: int, websocket: WebSocket) -> None:
        with self._lock:
            members = self._rooms.get(room)
            if not members:
                return
            for entry in [e for e in members if e[0] is websocket]:
                members.discard(entry)
            if not members:
                del self._rooms[room]

    def connection_count(self, room: int) -> int:
        with self._lock:
            return len(self._rooms.get(room, ()))

    def _members(self, room: int) -> list[tuple[WebSocket, asyncio.AbstractEventLoop]]:
        with self._lock:
            return list(self._rooms.get(room, ()))

    def _schedule(self, room: int, websocket: WebSocket, loop: asyncio.AbstractEventLoop, message: str) -> None:
        """Send ``message`` on the loop owning ``websocket``; drop it from the room if the send fails."""
        try:
            future = asyncio.run_coroutine_threadsafe(websocket.send_text(message), loop)
        except RuntimeError:
            self.leave(room, websocket)
            return

        def _done(fut):
            if fut.cancelled() or fut.exception() is not None:
                logger.info("Dropping dead connection of user %s", room)
                self.leave(room, websocket)

        future.add_done_callback(_done)

    async def emit(self, room: int, event: str, data: dict) -> None:
        """Send ``event`` to every connection in ``room`` from async code."""
        message = json.dumps({'event': event, 'data': data})
        current = asyncio.get_running_loop()
        for websocket, loop in self._members(room):
            if loop is current:
                try:
                    await websocket.send_text(message)
                except (RuntimeError, WebSocketDisconnect):
                    self.leave(room, websocket)
            elif loop.is_running():
                self._schedule(room, websocket, loop, message)

    def emit_threadsafe(self, room: int, event: str, data: dict) -> None:
        """Schedule ``event`` for ``room`` from synchronous code."""
        members = self._members(room)
        if not members:
            return
        message = json.dumps({'event': event, 'data': data})
        for websocket, loop in members:
            if not loop.is_running():
                continue
            self._schedule(room, websocket, loop, message)


hub = RoomHub()


def _authenticate(token: str | None) -> int | None:
    db = SessionLocal()
    try:
        user = get_user_by_token(db, token)
        return user.id if user else None
    finally:
        db.close()


def _store_message(sender_id: int, recipient_id: int, content: str) -> dict | None:
    from sessiontrack.api.serializers import serialize_message

    db = SessionLocal()
    try:
        if db.get(models.User, recipient_id) is None:
            return None
        message = models.Message(sender_id=sender_id, recipient_id=recipient_id, content=content)
        db.add(message)
        safe_commit(db)
        return serialize_message(message)
    finally:
        db.close()


async def _send_error(websocket: WebSocket, detail: str) -> None:
    await websocket.send_text(json.dumps({'event': 'error', 'data': {'detail': detail}}))


async def handle_frame(user_id: int, websocket: WebSocket, frame: dict) -> None:
    event = frame.get('event')
    if event == 'ping':
        await websocket.send_text(json.dumps({'event': 'pong', 'data': {}}))
        return
    if event not in ('typing', 'private-message'):
        await _send_error(websocket, f"Unknown event: {event!r}")
        return
    try:
        to = int(frame.get('to'))
    except (TypeError, ValueError):
        await _send_error(websocket, "'to' must be a user id")
        return
    if to == user_id:
        await _send_error(websocket, 'Cannot send to yourself')
        return
    if event == 'typing':
        await hub.emit(to, 'typing', {'from': user_id})
        return
    message = frame.get('message')
    if message is not None and not isinstance(message, str):
        await _send_error(websocket, 'Message content must be text')
        return
    content = clean_text(message)
    if not content:
        await _send_error(websocket, 'Message content is required')
        return
    stored = await run_in_threadpool(_store_message, user_id, to, content)
    if stored is None:
        await _send_error(websocket, 'Recipient not found')
        return
    time = dt.datetime.now(dt.timezone.utc).isoformat()
    await hub.emit(to, 'private-message', {**stored, 'from': user_id, 'message': content, 'time': time})
    await websocket.send_text(json.dumps({'event': 'message-sent', 'data': stored}))


async def websocket_endpoint(websocket: WebSocket, token: str | None = None):
    user_id = await run_in_threadpool(_authenticate, token)
    await websocket.accept()
    if user_id is None:
        logger.warning("Socket rejected: invalid token")
        await websocket.close(code=WS_UNAUTHORIZED)
        return
    hub.join(user_id, websocket)
    logger.info("Socket connected for user %s", user_id)
    try:
        await websocket.send_text(json.dumps({'event': 'connected', 'data': {'user_id': user_id}}))
        while True:
            raw = await websocket.receive_text()
            try:
                frame = json.loads(raw)
            except json.JSONDecodeError:
                await _send_error(websocket, 'Invalid JSON')
                continue
            if not isinstance(frame, dict):
                await _send_error(websocket, 'Invalid frame')
                continue
            await handle_frame(user_id, websocket, frame)
    except WebSocketDisconnect:
        pass
    finally:
        hub.leave(user_id, websocket)
        logger.info("Socket disconnected for user %s", user_id)
