"""Chat session routes: history, titles and working memory."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, status
from pydantic import BaseModel, Field

from agentkit.memory.models import ChatSession, MemoryScope
from agentkit.memory.provider import InMemoryProvider
from agentkit.runtime import get_memory_provider

router = APIRouter(prefix="/sessions", tags=["sessions"])


class SessionResponse(BaseModel):
    chat_id: str
    user_id: Optional[str]
    title: Optional[str]
    created_at: datetime
    updated_at: datetime
    message_count: int

    @classmethod
    def from_session(cls, chat: ChatSession) -> "SessionResponse":
        return cls(
            chat_id=chat.chat_id,
            user_id=chat.user_id,
            title=chat.title,
            created_at=chat.created_at,
            updated_at=chat.updated_at,
            message_count=chat.message_count,
        )


class MessageResponse(BaseModel):
    role: str
    content: str
    timestamp: datetime


class TitleUpdate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)


class WorkingMemoryBody(BaseModel):
    content: str
    updated_at: Optional[datetime] = None


async def _require_chat(memory: InMemoryProvider, chat_id: str) -> ChatSession:
    chat = await memory.get_chat(chat_id)
    if chat is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown chat")
    return chat


@router.get("", response_model=List[SessionResponse])
async def list_sessions(
    user_id: Optional[str] = None,
    memory: InMemoryProvider = Depends(get_memory_provider),
) -> List[SessionResponse]:
    return [SessionResponse.from_session(chat) for chat in await memory.get_chats(user_id)]


@router.get("/{chat_id}", response_model=SessionResponse)
async def get_session(chat_id: str, memory: InMemoryProvider = Depends(get_memory_provider)) -> SessionResponse:
    return SessionResponse.from_session(await _require_chat(memory, chat_id))


@router.patch("/{chat_id}", response_model=SessionResponse)
async def rename_session(
    chat_id: str,
    request: TitleUpdate,
    memory: InMemoryProvider = Depends(get_memory_provider),
) -> SessionResponse:
    await _require_chat(memory, chat_id)
    await memory.update_chat_title(chat_id, request.title)
    return SessionResponse.from_session(await _require_chat(memory, chat_id))


@router.get("/{chat_id}/messages", response_model=List[MessageResponse])
async def list_messages(
    chat_id: str,
    limit: Optional[int] = Query(default=None, ge=1),
    memory: InMemoryProvider = Depends(get_memory_provider),
) -> List[MessageResponse]:
    await _require_chat(memory, chat_id)
    return [
        MessageResponse(role=message.role, content=message.content, timestamp=message.timestamp)
        for message in await memory.get_messages(chat_id, limit)
    ]


@router.get("/{chat_id}/memory", response_model=WorkingMemoryBody)
async def get_working_memory(
    chat_id: str,
    scope: MemoryScope = MemoryScope.CHAT,
    user_id: Optional[str] = None,
    memory: InMemoryProvider = Depends(get_memory_provider),
) -> WorkingMemoryBody:
    stored = await memory.get_working_memory(scope=scope, chat_id=chat_id, user_id=user_id)
    if stored is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="No working memory")
    return WorkingMemoryBody(content=stored.content, updated_at=stored.updated_at)


@router.put("/{chat_id}/memory", response_model=WorkingMemoryBody)
async def put_working_memory(
    chat_id: str,
    request: WorkingMemoryBody,
    scope: MemoryScope = MemoryScope.CHAT,
    user_id: Optional[str] = None,
    memory: InMemoryProvider = Depends(get_memory_provider),
) -> WorkingMemoryBody:
    await memory.update_working_memory(scope=scope, content=request.content, chat_id=chat_id, user_id=user_id)
    stored = await memory.get_working_memory(scope=scope, chat_id=chat_id, user_id=user_id)
    return WorkingMemoryBody(content=stored.content, updated_at=stored.updated_at)
