from __future__ import annotations

from datetime import datetime

from relay_chat.chat.models import Chat


class ChatListController:
    def __init__(self, *, line_prefix: str, short_id_len: int = 8):
        self._line_prefix = line_prefix
        self._short_id_len = short_id_len

    def short_id(self, value: str) -> str:
        if len(value) <= self._short_id_len:
            return value
        return value[: self._short_id_len]

    def resolve_chat_id(self, chats: list[Chat], identifier: str) -> str:
        """Resolve a full id or unique id prefix. Raises ``ValueError`` on no or several matches."""
        identifier = identifier.strip()
        if not identifier:
            raise ValueError("A chat id is required.")
        for chat in chats:
            if chat.id == identifier:
                return chat.id
        matches = [chat.id for chat in chats if chat.id.startswith(identifier)]
        if not matches:
            raise ValueError(f"No chat matches {identifier!r}.")
        if len(matches) > 1:
            raise ValueError(f"Chat id {identifier!r} is ambiguous ({len(matches)} matches).")
        return matches[0]

    def format_chat_list_entry(self, chat: Chat, *, active_chat_id: str | None) -> str:
        marker = "*" if chat.id == active_chat_id else " "
        return (
            f"{self._line_prefix}{marker} {chat.title} [{self.short_id(chat.id)}] "
            f"(messages={len(chat.messages)}, updated={_format_ms(chat.updated_at)})"
        )

    def format_chat_list(self, chats: list[Chat], *, active_chat_id: str | None) -> list[str]:
        if not chats:
            return [f"{self._line_prefix}No chats."]
        return [self.format_chat_list_entry(c, active_chat_id=active_chat_id) for c in chats]


def _format_ms(value: int) -> str:
    return datetime.fromtimestamp(value / 1000).isoformat(sep=" ", timespec="seconds")
