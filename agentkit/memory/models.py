"""Data shapes exchanged with memory providers."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Protocol


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MemoryScope(str, Enum):
    """Whether working memory follows a chat or a user."""

    CHAT = "chat"
    USER = "user"


@dataclass(slots=True)
class WorkingMemory:
    content: str
    updated_at: datetime = field(default_factory=utcnow)


@dataclass(slots=True)
class ConversationMessage:
    chat_id: str
    role: str
    content: str
    timestamp: datetime = field(default_factory=utcnow)
    user_id: Optional[str] = None

    def to_chat_message(self) -> Dict[str, str]:
        return {"role": self.role, "content": self.content}


@dataclass(slots=True)
class ChatSession:
    chat_id: str
    user_id: Optional[str] = None
    title: Optional[str] = None
    created_at: datetime = field(default_factory=utcnow)
    updated_at: datetime = field(default_factory=utcnow)
    message_count: int = 0


@dataclass(frozen=True, slots=True)
class MemoryStats:
    working_memory_count: int
    message_count: int
    chat_count: int


class MemoryProvider(Protocol):
    """Storage for working memory, message history and chat sessions."""

    async def get_working_memory(
        self, *, scope: MemoryScope, chat_id: Optional[str] = None, user_id: Optional[str] = None
    ) -> Optional[WorkingMemory]:
        ...

    async def update_working_memory(
        self,
        *,
        scope: MemoryScope,
        content: str,
        chat_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> None:
        ...

    async def save_message(self, message: ConversationMessage) -> None:
        ...

    async def get_messages(self, chat_id: str, limit: Optional[int] = None) -> List[ConversationMessage]:
        ...

    async def save_chat(self, chat: ChatSession) -> None:
        ...

    async def get_chats(self, user_id: Optional[str] = None) -> List[ChatSession]:
        ...

    async def get_chat(self, chat_id: str) -> Optional[ChatSession]:
        ...

    async def update_chat_title(self, chat_id: str, title: str) -> None:
        ...
