from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from loguru import logger

from relay_chat.provider import CompletionSource

EVENT_PROMPT = "chat-message"
EVENT_DELTA = "chat-stream"
EVENT_COMPLETE = "chat-complete"
EVENT_ERROR = "chat-error"

DEFAULT_ERROR_MESSAGE = "An error occurred while processing your request"

# Matches the signature of socketio.AsyncServer.emit(event, data, to=...).
Emitter = Callable[..., Awaitable[Any]]


class StreamingRelay:
    """Bridges one upstream text stream per prompt onto a client's channel.

    Each call to ``submit_prompt`` is independent: it owns its accumulator,
    emits one ``chat-stream`` per upstream delta and finishes with exactly one
    ``chat-complete`` or ``chat-error``. Overlapping calls for the same client
    are neither serialized nor rejected.
    """

    def __init__(self, provider: CompletionSource, emit: Emitter):
        self._provider = provider
        self._emit = emit

    async def handle_prompt_event(self, sid: str, data: Any) -> None:
        prompt = data.get("prompt") if isinstance(data, dict) else None
        if not isinstance(prompt, str):
            logger.warning(f"Rejected chat message from {sid}: missing prompt")
            await self._emit(EVENT_ERROR, {"error": "Message payload must include a 'prompt' string"}, to=sid)
            return
        await self.submit_prompt(sid, prompt)

    async def submit_prompt(self, sid: str, prompt: str) -> str | None:
        """Relay one prompt. Returns the full response, or ``None`` if upstream failed."""
        logger.info(f"Chat message from {sid}: {prompt[:80]!r}")
        parts: list[str] = []
        try:
            async for delta in self._provider.stream_text(prompt):
                parts.append(delta)
                await self._emit(EVENT_DELTA, {"content": delta}, to=sid)
        except Exception as ex:
            message = str(ex) or DEFAULT_ERROR_MESSAGE
            logger.error(f"Chat error for {sid}: {message}")
            await self._emit(EVENT_ERROR, {"error": message}, to=sid)
            return None

        full_response = "".join(parts)
        await self._emit(EVENT_COMPLETE, {"fullResponse": full_response}, to=sid)
        logger.info(f"Chat completed for {sid} ({len(parts)} deltas, {len(full_response)} chars)")
        return full_response
