from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable
from typing import Any

import socketio
from loguru import logger
from socketio.exceptions import ConnectionError as SocketConnectionError

Handler = Callable[..., Awaitable[None] | None]

_LIFECYCLE_EVENTS = frozenset({"connect", "disconnect", "connect_error"})


class ChannelNotReadyError(RuntimeError):
    """Raised when emitting on a channel that has not been started or is closed."""


class ConnectionManager:
    """Owns the client's Socket.IO connection and its ``connected`` signal.

    ``start()`` connects in the background, leaving reconnection to the
    transport. ``close()`` detaches every handler before shutting the client
    down, so no callback fires and no reconnect attempt runs once it returns.
    """

    def __init__(
        self,
        url: str,
        *,
        client: Any | None = None,
        transports: tuple[str, ...] = ("websocket", "polling"),
    ):
        self._url = url
        self._transports = list(transports)
        self._client = client if client is not None else socketio.AsyncClient(reconnection=True)
        self._handlers: dict[str, list[Handler]] = {}
        self._connected = False
        self._started = False
        self._closed = False
        self._connect_task: asyncio.Task | None = None

        self._client.on("connect", self._on_connect)
        self._client.on("disconnect", self._on_disconnect)
        self._client.on("connect_error", self._on_connect_error)

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def url(self) -> str:
        return self._url

    def on(self, event: str, handler: Handler) -> None:
        if event not in self._handlers:
            self._handlers[event] = []
            if event not in _LIFECYCLE_EVENTS:
                self._client.on(event, self._make_dispatcher(event))
        self._handlers[event].append(handler)

    async def start(self) -> None:
        if self._started:
            return
        self._started = True
        self._connect_task = asyncio.create_task(self._connect())

    async def emit(self, event: str, data: Any) -> None:
        if not self._started or self._closed:
            raise ChannelNotReadyError(f"Cannot emit {event!r}: connection has not been started")
        await self._client.emit(event, data)

    async def close(self) -> None:
        if self._closed:
            return
        logger.info("Disconnecting socket...")
        self._closed = True
        self._handlers.clear()
        if self._connect_task is not None and not self._connect_task.done():
            self._connect_task.cancel()
            try:
                await self._connect_task
            except asyncio.CancelledError:
                pass
        self._connect_task = None
        # shutdown() also aborts a pending reconnect loop.
        await self._client.shutdown()
        self._connected = False

    async def _connect(self) -> None:
        try:
            await self._client.connect(self._url, transports=self._transports, retry=True)
        except SocketConnectionError as ex:
            logger.error(f"Connection error: {ex}")
            self._connected = False

    def _make_dispatcher(self, event: str) -> Callable[..., Awaitable[None]]:
        async def _dispatch(*args: Any) -> None:
            for handler in list(self._handlers.get(event, [])):
                if self._closed:
                    return
                result = handler(*args)
                if asyncio.iscoroutine(result):
                    await result

        return _dispatch

    async def _on_connect(self) -> None:
        if self._closed:
            return
        self._connected = True
        logger.info(f"Connected to server: {self._url}")
        await self._dispatch_lifecycle("connect")

    async def _on_disconnect(self, *args: Any) -> None:
        if self._closed:
            return
        self._connected = False
        reason = args[0] if args else "unknown"
        logger.warning(f"Disconnected from server. Reason: {reason}")
        await self._dispatch_lifecycle("disconnect", *args)

    async def _on_connect_error(self, data: Any = None) -> None:
        if self._closed:
            return
        self._connected = False
        logger.error(f"Connection error: {data}")
        await self._dispatch_lifecycle("connect_error", data)

    async def _dispatch_lifecycle(self, event: str, *args: Any) -> None:
        for handler in list(self._handlers.get(event, [])):
            result = handler(*args)
            if asyncio.iscoroutine(result):
                await result
