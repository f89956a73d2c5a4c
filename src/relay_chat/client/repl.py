from __future__ import annotations

import asyncio
from collections.abc import Callable

from loguru import logger

from relay_chat.client.connection import ConnectionManager
from relay_chat.client.session import ChatSession
from relay_chat.commands.router import CommandRouter
from relay_chat.services.chat_list_controller import ChatListController

_HELP_LINES = (
    "/new               start a new chat",
    "/chats             list chats (most recent first)",
    "/switch <id>       switch to a chat by id or id prefix",
    "/delete <id>       delete a chat by id or id prefix",
    "/clear             clear the current chat",
    "/status            show connection and chat status",
    "exit | quit        leave",
)


class ChatRepl:
    _LINE_PREFIX = "assistant> "
    _USER_PROMPT = "you> "

    def __init__(
        self,
        session: ChatSession,
        connection: ConnectionManager,
        *,
        read_line: Callable[[str], str] = input,
        write: Callable[[str], None] | None = None,
    ):
        self._session = session
        self._connection = connection
        self._read_line = read_line
        self._write = write or (lambda text: print(text, end="", flush=True))
        self._chat_list = ChatListController(line_prefix=self._LINE_PREFIX)
        self._router = CommandRouter(
            on_help=self._on_help,
            on_new=self._on_new,
            on_chats=self._on_chats,
            on_switch=self._on_switch,
            on_delete=self._on_delete,
            on_clear=self._on_clear,
            on_status=self._on_status,
            on_unknown=self._on_unknown,
        )
        session.bind_renderer(on_delta=self.render_delta, on_error=self.render_error)

    def render_delta(self, fragment: str) -> None:
        self._write(fragment)

    def render_error(self, error: str) -> None:
        self._print(f"Error: {error}")

    async def run(self) -> None:
        while True:
            try:
                user_input = await asyncio.to_thread(self._read_line, self._USER_PROMPT)
            except (EOFError, KeyboardInterrupt):
                break

            trimmed = user_input.strip()
            if trimmed in ("exit", "quit"):
                break
            if not trimmed:
                continue

            try:
                await self.handle_input(trimmed)
            except Exception as ex:
                logger.error(f"Unhandled error: {ex}")

    async def handle_input(self, text: str) -> None:
        if await self._router.try_handle(text):
            return

        if not self._connection.connected:
            self._print("Not connected to the relay server; try again shortly.")
            return

        if not self._session.can_submit:
            self._print("A reply is still streaming; wait for it to finish.")
            return

        self._write(self._LINE_PREFIX)
        await self._session.submit(text)
        await self._session.wait_for_reply()
        self._write("\n\n")

    def _print(self, line: str) -> None:
        self._write(line + "\n")

    async def _on_help(self) -> None:
        self._print(f"{self._LINE_PREFIX}Commands:")
        for line in _HELP_LINES:
            self._print(f"{self._LINE_PREFIX}  {line}")

    async def _on_new(self) -> None:
        chat = self._session.state.create_new_chat()
        self._print(f"{self._LINE_PREFIX}Started new chat [{self._chat_list.short_id(chat.id)}]")

    async def _on_chats(self) -> None:
        state = self._session.state
        for line in self._chat_list.format_chat_list(state.sorted_chats(), active_chat_id=state.active_chat_id):
            self._print(line)

    async def _on_switch(self, identifier: str) -> None:
        state = self._session.state
        try:
            chat_id = self._chat_list.resolve_chat_id(state.sorted_chats(), identifier)
        except ValueError as ex:
            self._print(f"{self._LINE_PREFIX}{ex}")
            return
        state.switch_chat(chat_id)
        chat = state.active_chat
        self._print(f"{self._LINE_PREFIX}Switched to {chat.title} [{self._chat_list.short_id(chat_id)}]")
        for message in state.messages:
            label = self._USER_PROMPT if message.role == "user" else self._LINE_PREFIX
            self._print(f"{label}{message.content}")

    async def _on_delete(self, identifier: str) -> None:
        state = self._session.state
        try:
            chat_id = self._chat_list.resolve_chat_id(state.sorted_chats(), identifier)
        except ValueError as ex:
            self._print(f"{self._LINE_PREFIX}{ex}")
            return
        state.delete_chat(chat_id)
        self._print(
            f"{self._LINE_PREFIX}Deleted [{self._chat_list.short_id(chat_id)}]; "
            f"active chat is [{self._chat_list.short_id(state.active_chat_id or '')}]"
        )

    async def _on_clear(self) -> None:
        self._session.state.clear_current_chat()
        self._print(f"{self._LINE_PREFIX}Chat cleared.")

    async def _on_status(self) -> None:
        state = self._session.state
        chat = state.active_chat
        status = "Connected" if self._connection.connected else "Disconnected"
        self._print(f"{self._LINE_PREFIX}{status} ({self._connection.url})")
        if chat is not None:
            self._print(
                f"{self._LINE_PREFIX}Active chat: {chat.title} [{self._chat_list.short_id(chat.id)}], "
                f"{len(chat.messages)} message(s), {len(state.chats)} chat(s) total"
            )

    def _on_unknown(self, command: str) -> None:
        self._print(f"{self._LINE_PREFIX}Unknown command: {command}. Type /help for commands.")
