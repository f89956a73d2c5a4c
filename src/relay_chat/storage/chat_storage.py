from __future__ import annotations

import json
import sqlite3

from loguru import logger

from relay_chat.chat.models import NEW_CHAT_TITLE, Chat, Message, derive_title
from relay_chat.storage.local_storage import LocalStorage, QuotaExceededError

STORAGE_KEY = "ai_assistant_chats"


class ChatStorage:
    """Read/write helpers over the single serialized chat mapping.

    Every mutating call re-reads the stored mapping, applies its change and
    writes the whole mapping back. Write failures are logged and swallowed.
    """

    def __init__(self, storage: LocalStorage, *, key: str = STORAGE_KEY):
        self._storage = storage
        self._key = key

    def get_all_chats(self) -> dict[str, Chat]:
        try:
            stored = self._storage.get_item(self._key)
        except sqlite3.Error as ex:
            logger.error(f"Error reading chats from storage: {ex}")
            return {}
        if not stored:
            return {}
        try:
            raw = json.loads(stored)
            return {chat_id: Chat.from_dict(data) for chat_id, data in raw.items()}
        except (ValueError, KeyError, TypeError, AttributeError) as ex:
            logger.error(f"Error reading chats from storage, treating as empty: {ex}")
            return {}

    def get_chat(self, chat_id: str) -> Chat | None:
        return self.get_all_chats().get(chat_id)

    def create_chat(self) -> Chat:
        chat = Chat.create()
        chats = self.get_all_chats()
        chats[chat.id] = chat
        self._save(chats, action="create new chat")
        return chat

    def update_chat(self, chat_id: str, messages: list[Message]) -> None:
        chats = self.get_all_chats()
        chat = chats.get(chat_id)
        if chat is None:
            logger.error(f"Chat with id {chat_id} not found")
            return

        chat.messages = list(messages)
        chat.touch()
        if chat.title == NEW_CHAT_TITLE:
            chat.title = derive_title(chat.messages)
        self._save(chats, action="update chat")

    def delete_chat(self, chat_id: str) -> None:
        chats = self.get_all_chats()
        chats.pop(chat_id, None)
        self._save(chats, action="delete chat")

    def clear_chat_messages(self, chat_id: str) -> None:
        chats = self.get_all_chats()
        chat = chats.get(chat_id)
        if chat is None:
            logger.error(f"Chat with id {chat_id} not found")
            return

        chat.messages = []
        chat.title = NEW_CHAT_TITLE
        chat.touch()
        self._save(chats, action="clear chat messages")

    def clear_all_chats(self) -> None:
        try:
            self._storage.remove_item(self._key)
        except sqlite3.Error as ex:
            logger.error(f"Error clearing all chats from storage: {ex}")

    def _save(self, chats: dict[str, Chat], *, action: str) -> bool:
        payload = json.dumps({chat_id: chat.to_dict() for chat_id, chat in chats.items()})
        try:
            self._storage.set_item(self._key, payload)
        except QuotaExceededError as ex:
            logger.warning(f"Storage quota exceeded. Unable to {action}: {ex}")
            return False
        except sqlite3.Error as ex:
            logger.error(f"Error writing chats to storage ({action}): {ex}")
            return False
        return True
