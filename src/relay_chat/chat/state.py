from __future__ import annotations

from collections.abc import Callable

from loguru import logger

from relay_chat.chat.models import NEW_CHAT_TITLE, ROLE_ASSISTANT, Chat, Message, derive_title
from relay_chat.storage.chat_storage import ChatStorage


class ChatStateMachine:
    """In-memory view of every chat thread, the active thread and the streaming buffer.

    All mutations write through to ``ChatStorage`` before returning. Storage
    failures never roll back the in-memory change. Guarded operations that
    find nothing to act on return ``False`` instead of raising.
    """

    def __init__(self, storage: ChatStorage):
        self._storage = storage
        self._listeners: list[Callable[[], None]] = []
        self._streaming_content = ""
        self._is_streaming = False

        self._chats: dict[str, Chat] = storage.get_all_chats()
        if not self._chats:
            initial = storage.create_chat()
            self._chats = {initial.id: initial}
        self._active_chat_id: str | None = self._most_recent_chat_id()
        logger.info(f"Loaded {len(self._chats)} chat(s), active chat {self._active_chat_id}")

    # -- read side ---------------------------------------------------------

    @property
    def chats(self) -> dict[str, Chat]:
        return dict(self._chats)

    @property
    def active_chat_id(self) -> str | None:
        return self._active_chat_id

    @property
    def active_chat(self) -> Chat | None:
        if self._active_chat_id is None:
            return None
        return self._chats.get(self._active_chat_id)

    @property
    def messages(self) -> list[Message]:
        chat = self.active_chat
        return list(chat.messages) if chat is not None else []

    @property
    def is_streaming(self) -> bool:
        return self._is_streaming

    @property
    def streaming_content(self) -> str:
        return self._streaming_content

    def sorted_chats(self) -> list[Chat]:
        return sorted(self._chats.values(), key=lambda c: c.updated_at, reverse=True)

    def subscribe(self, listener: Callable[[], None]) -> Callable[[], None]:
        """Register a change listener. Returns a callable that unregisters it."""
        self._listeners.append(listener)

        def _unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return _unsubscribe

    # -- operations --------------------------------------------------------

    def create_new_chat(self) -> Chat:
        chat = self._storage.create_chat()
        self._chats[chat.id] = chat
        self._active_chat_id = chat.id
        self._reset_streaming()
        self._notify()
        return chat

    def switch_chat(self, chat_id: str) -> bool:
        if chat_id not in self._chats:
            logger.debug(f"Ignoring switch to unknown chat {chat_id}")
            return False
        self._active_chat_id = chat_id
        self._reset_streaming()
        self._notify()
        return True

    def delete_chat(self, chat_id: str) -> bool:
        self._storage.delete_chat(chat_id)
        existed = self._chats.pop(chat_id, None) is not None

        if self._active_chat_id == chat_id:
            if self._chats:
                self._active_chat_id = self._most_recent_chat_id()
            else:
                replacement = self._storage.create_chat()
                self._chats = {replacement.id: replacement}
                self._active_chat_id = replacement.id
        self._notify()
        return existed

    def clear_current_chat(self) -> bool:
        chat = self.active_chat
        if chat is None:
            logger.debug("Ignoring clear with no active chat")
            return False

        self._storage.clear_chat_messages(chat.id)
        chat.messages = []
        chat.title = NEW_CHAT_TITLE
        chat.touch()
        self._reset_streaming()
        self._notify()
        return True

    def add_message(self, role: str, content: str) -> Message | None:
        chat = self.active_chat
        if chat is None:
            logger.debug("Ignoring message with no active chat")
            return None

        message = Message.create(role, content)
        self._append(chat, message)
        self._notify()
        return message

    def update_streaming_message(self, content: str) -> None:
        self._streaming_content = content
        self._is_streaming = len(content) > 0
        self._notify()

    def finalize_streaming_message(self, full_response: str) -> Message | None:
        chat = self.active_chat
        if chat is None:
            logger.debug("Ignoring finalize with no active chat")
            return None

        message = Message.create(ROLE_ASSISTANT, full_response)
        self._append(chat, message)
        self._reset_streaming()
        self._notify()
        return message

    # -- internals ---------------------------------------------------------

    def _append(self, chat: Chat, message: Message) -> None:
        updated = [*chat.messages, message]
        self._storage.update_chat(chat.id, updated)
        chat.messages = updated
        chat.touch()
        if chat.title == NEW_CHAT_TITLE:
            chat.title = derive_title(updated)

    def _reset_streaming(self) -> None:
        self._streaming_content = ""
        self._is_streaming = False

    def _most_recent_chat_id(self) -> str | None:
        if not self._chats:
            return None
        return max(self._chats.values(), key=lambda c: c.updated_at).id

    def _notify(self) -> None:
        for listener in list(self._listeners):
            try:
                listener()
            except Exception as ex:
                logger.error(f"Chat state listener failed: {ex}")
