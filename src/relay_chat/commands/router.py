from __future__ import annotations

from collections.abc import Awaitable, Callable


class CommandRouter:
    def __init__(
        self,
        *,
        on_help: Callable[[], Awaitable[None]],
        on_new: Callable[[], Awaitable[None]],
        on_chats: Callable[[], Awaitable[None]],
        on_switch: Callable[[str], Awaitable[None]],
        on_delete: Callable[[str], Awaitable[None]],
        on_clear: Callable[[], Awaitable[None]],
        on_status: Callable[[], Awaitable[None]],
        on_unknown: Callable[[str], None],
    ) -> None:
        self._on_help = on_help
        self._on_new = on_new
        self._on_chats = on_chats
        self._on_switch = on_switch
        self._on_delete = on_delete
        self._on_clear = on_clear
        self._on_status = on_status
        self._on_unknown = on_unknown

    async def try_handle(self, user_message: str) -> bool:
        trimmed = user_message.strip()
        if not trimmed.startswith("/"):
            return False

        command, _, argument = trimmed.partition(" ")
        argument = argument.strip()

        if command == "/help":
            await self._on_help()
            return True
        if command == "/new":
            await self._on_new()
            return True
        if command == "/chats":
            await self._on_chats()
            return True
        if command == "/switch":
            await self._on_switch(argument)
            return True
        if command == "/delete":
            await self._on_delete(argument)
            return True
        if command == "/clear":
            await self._on_clear()
            return True
        if command == "/status":
            await self._on_status()
            return True

        self._on_unknown(trimmed)
        return True
