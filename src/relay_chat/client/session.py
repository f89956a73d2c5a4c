from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any

from loguru import logger

from relay_chat.chat.models import ROLE_ASSISTANT, ROLE_USER
from relay_chat.chat.state import ChatStateMachine
from relay_chat.client.connection import ConnectionManager
from relay_chat.server.relay import EVENT_COMPLETE, EVENT_DELTA, EVENT_ERROR, EVENT_PROMPT


class ChatSession:
    """Wires relay events on the connection into the chat state machine."""

    def __init__(
        self,
        state: ChatStateMachine,
        connection: ConnectionManager,
        *,
        on_delta: Callable[[str], None] | None = None,
        on_complete: Callable[[str], None] | None = None,
        on_error: Callable[[str], None] | None = None,
    ):
        self._state = state
        self._connection = connection
        self._on_delta = on_delta
        self._on_complete = on_complete
        self._on_error = on_error
        self._idle = asyncio.Event()
        self._idle.set()

        connection.on(EVENT_DELTA, self._handle_delta)
        connection.on(EVENT_COMPLETE, self._handle_complete)
        connection.on(EVENT_ERROR, self._handle_error)
        connection.on("disconnect", self._handle_disconnect)

    def bind_renderer(
        self,
        *,
        on_delta: Callable[[str], None] | None = None,
        on_complete: Callable[[str], None] | None = None,
        on_error: Callable[[str], None] | None = None,
    ) -> None:
        self._on_delta = on_delta
        self._on_complete = on_complete
        self._on_error = on_error

    @property
    def state(self) -> ChatStateMachine:
        return self._state

    @property
    def can_submit(self) -> bool:
        return self._connection.connected and not self._state.is_streaming and self._idle.is_set()

    async def submit(self, prompt: str) -> bool:
        """Send a prompt. Returns ``False`` when it is empty, offline, or a reply is still streaming."""
        text = prompt.strip()
        if not text or not self.can_submit:
            return False

        self._state.add_message(ROLE_USER, text)
        self._idle.clear()
        try:
            await self._connection.emit(EVENT_PROMPT, {"prompt": text})
        except BaseException:
            self._idle.set()
            raise
        self._state.update_streaming_message("")
        return True

    async def wait_for_reply(self) -> None:
        await self._idle.wait()

    def _handle_delta(self, data: Any) -> None:
        fragment = data.get("content", "") if isinstance(data, dict) else ""
        self._state.update_streaming_message(self._state.streaming_content + fragment)
        if self._on_delta is not None:
            self._on_delta(fragment)

    def _handle_complete(self, data: Any) -> None:
        full_response = data.get("fullResponse", "") if isinstance(data, dict) else ""
        self._state.finalize_streaming_message(full_response)
        self._state.update_streaming_message("")
        self._idle.set()
        if self._on_complete is not None:
            self._on_complete(full_response)

    def _handle_disconnect(self, *_: Any) -> None:
        # Replies for the old connection are lost; drop the partial one so input unblocks.
        if not self._idle.is_set():
            self._state.update_streaming_message("")
            self._idle.set()

    def _handle_error(self, data: Any) -> None:
        error = data.get("error", "") if isinstance(data, dict) else str(data)
        logger.error(f"Chat error: {error}")
        self._state.add_message(ROLE_ASSISTANT, f"Error: {error}")
        self._state.update_streaming_message("")
        self._idle.set()
        if self._on_error is not None:
            self._on_error(error)
