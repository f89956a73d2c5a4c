from __future__ import annotations

from typing import Any

import socketio
from loguru import logger

from relay_chat.server.relay import EVENT_PROMPT, StreamingRelay


class SocketService:
    """Owns the Socket.IO server and the per-connection event handlers.

    Constructed with its server, so every emit helper is usable as soon as
    the object exists.
    """

    def __init__(self, io: socketio.AsyncServer, relay: StreamingRelay):
        self._io = io
        self._relay = relay
        self._register_handlers()
        logger.info("Socket.IO handlers registered")

    @property
    def io(self) -> socketio.AsyncServer:
        return self._io

    async def emit_to_all(self, event: str, data: Any) -> None:
        await self._io.emit(event, data)

    async def emit_to_room(self, room: str, event: str, data: Any) -> None:
        await self._io.emit(event, data, room=room)

    async def emit_to_socket(self, sid: str, event: str, data: Any) -> None:
        await self._io.emit(event, data, to=sid)

    def _register_handlers(self) -> None:
        self._io.on("connect", self._on_connect)
        self._io.on("disconnect", self._on_disconnect)
        self._io.on(EVENT_PROMPT, self._relay.handle_prompt_event)
        self._io.on("message", self._on_message)
        self._io.on("broadcast", self._on_broadcast)
        self._io.on("join-room", self._on_join_room)
        self._io.on("leave-room", self._on_leave_room)
        self._io.on("room-message", self._on_room_message)

    async def _on_connect(self, sid: str, environ: dict, auth: Any = None) -> None:
        logger.info(f"Client connected: {sid}")

    async def _on_disconnect(self, sid: str, *args: Any) -> None:
        reason = args[0] if args else "unknown"
        logger.info(f"Client disconnected: {sid}, reason: {reason}")

    async def _on_message(self, sid: str, data: Any) -> None:
        logger.debug(f"Received message from {sid}: {data!r}")
        await self.emit_to_socket(sid, "message", {"echo": data})

    async def _on_broadcast(self, sid: str, data: Any) -> None:
        logger.debug(f"Broadcasting from {sid}: {data!r}")
        await self.emit_to_all("broadcast", data)

    async def _on_join_room(self, sid: str, room_id: str) -> None:
        await self._io.enter_room(sid, room_id)
        logger.info(f"Client {sid} joined room: {room_id}")
        await self._io.emit("user-joined", {"socketId": sid}, room=room_id, skip_sid=sid)

    async def _on_leave_room(self, sid: str, room_id: str) -> None:
        await self._io.leave_room(sid, room_id)
        logger.info(f"Client {sid} left room: {room_id}")
        await self.emit_to_room(room_id, "user-left", {"socketId": sid})

    async def _on_room_message(self, sid: str, data: Any) -> None:
        if not isinstance(data, dict) or "roomId" not in data:
            logger.warning(f"Ignoring room message from {sid} without roomId")
            return
        room_id = data["roomId"]
        logger.debug(f"Room message to {room_id}: {data.get('message')!r}")
        await self.emit_to_room(room_id, "room-message", {"from": sid, "message": data.get("message")})
