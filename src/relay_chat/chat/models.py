from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Any
from uuid import uuid4

NEW_CHAT_TITLE = "New Chat"
TITLE_MAX_LENGTH = 50
TITLE_ELLIPSIS = "..."

ROLE_USER = "user"
ROLE_ASSISTANT = "assistant"
_ROLES = {ROLE_USER, ROLE_ASSISTANT}


def generate_id() -> str:
    return str(uuid4())


def now_ms() -> int:
    return int(time.time() * 1000)


def truncate_title(text: str) -> str:
    """Surrounding whitespace is stripped before the 50-character cut."""
    title = text.strip()
    if len(title) > TITLE_MAX_LENGTH:
        return title[:TITLE_MAX_LENGTH] + TITLE_ELLIPSIS
    return title


def derive_title(messages: list[Message]) -> str:
    """Title for a chat: its first non-blank user message, truncated; the sentinel if there is none."""
    for message in messages:
        if message.role == ROLE_USER and message.content.strip():
            return truncate_title(message.content)
    return NEW_CHAT_TITLE


@dataclass(frozen=True)
class Message:
    id: str
    role: str
    content: str
    timestamp: int

    def __post_init__(self) -> None:
        if self.role not in _ROLES:
            raise ValueError(f"Unknown message role: {self.role!r}")

    @classmethod
    def create(cls, role: str, content: str) -> Message:
        return cls(id=generate_id(), role=role, content=content, timestamp=now_ms())

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "role": self.role,
            "content": self.content,
            "timestamp": self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Message:
        return cls(
            id=str(data["id"]),
            role=str(data["role"]),
            content=str(data["content"]),
            timestamp=int(data["timestamp"]),
        )


@dataclass
class Chat:
    id: str
    title: str = NEW_CHAT_TITLE
    messages: list[Message] = field(default_factory=list)
    created_at: int = 0
    updated_at: int = 0

    @classmethod
    def create(cls) -> Chat:
        now = now_ms()
        return cls(id=generate_id(), created_at=now, updated_at=now)

    def touch(self) -> None:
        # updatedAt never moves backwards, even if the wall clock does.
        self.updated_at = max(self.updated_at, now_ms())

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "messages": [m.to_dict() for m in self.messages],
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Chat:
        return cls(
            id=str(data["id"]),
            title=str(data.get("title", NEW_CHAT_TITLE)),
            messages=[Message.from_dict(m) for m in data.get("messages", [])],
            created_at=int(data["createdAt"]),
            updated_at=int(data["updatedAt"]),
        )
