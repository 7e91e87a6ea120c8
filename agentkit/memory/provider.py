"""In-memory memory provider for development and tests."""
from __future__ import annotations

from typing import Dict, List, Optional

from agentkit.memory.models import (
    ChatSession,
    ConversationMessage,
    MemoryScope,
    MemoryStats,
    WorkingMemory,
    utcnow,
)


class InMemoryProvider:
    """Process-scoped storage; inject one instance wherever memory is needed."""

    def __init__(self) -> None:
        self._working_memory: Dict[str, WorkingMemory] = {}
        self._messages: Dict[str, List[ConversationMessage]] = {}
        self._chats: Dict[str, ChatSession] = {}

    async def get_working_memory(
        self, *, scope: MemoryScope, chat_id: Optional[str] = None, user_id: Optional[str] = None
    ) -> Optional[WorkingMemory]:
        return self._working_memory.get(self._working_memory_key(scope, chat_id, user_id))

    async def update_working_memory(
        self,
        *,
        scope: MemoryScope,
        content: str,
        chat_id: Optional[str] = None,
        user_id: Optional[str] = None,
    ) -> None:
        key = self._working_memory_key(scope, chat_id, user_id)
        self._working_memory[key] = WorkingMemory(content=content, updated_at=utcnow())

    async def save_message(self, message: ConversationMessage) -> None:
        self._messages.setdefault(message.chat_id, []).append(message)
        chat = self._chats.get(message.chat_id)
        if chat is not None:
            chat.message_count += 1
            chat.updated_at = utcnow()

    async def get_messages(self, chat_id: str, limit: Optional[int] = None) -> List[ConversationMessage]:
        messages = self._messages.get(chat_id, [])
        if not limit:
            return list(messages)
        return messages[-limit:]

    async def save_chat(self, chat: ChatSession) -> None:
        self._chats[chat.chat_id] = chat

    async def get_chats(self, user_id: Optional[str] = None) -> List[ChatSession]:
        chats = list(self._chats.values())
        if user_id is None:
            return chats
        return [chat for chat in chats if chat.user_id == user_id]

    async def get_chat(self, chat_id: str) -> Optional[ChatSession]:
        return self._chats.get(chat_id)

    async def update_chat_title(self, chat_id: str, title: str) -> None:
        chat = self._chats.get(chat_id)
        if chat is not None:
            chat.title = title
            chat.updated_at = utcnow()

    def clear(self) -> None:
        self._working_memory.clear()
        self._messages.clear()
        self._chats.clear()

    def get_stats(self) -> MemoryStats:
        return MemoryStats(
            working_memory_count=len(self._working_memory),
            message_count=sum(len(messages) for messages in self._messages.values()),
            chat_count=len(self._chats),
        )

    @staticmethod
    def _working_memory_key(scope: MemoryScope, chat_id: Optional[str], user_id: Optional[str]) -> str:
        if scope == MemoryScope.USER:
            return f"user:{user_id or 'anonymous'}"
        return f"chat:{chat_id or 'default'}"
