from relay_chat.storage.chat_storage import STORAGE_KEY, ChatStorage
from relay_chat.storage.local_storage import LocalStorage, QuotaExceededError

__all__ = [
    "STORAGE_KEY",
    "ChatStorage",
    "LocalStorage",
    "QuotaExceededError",
]
