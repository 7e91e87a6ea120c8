"""Chat endpoint: one agent turn per request, with stored history."""
from __future__ import annotations

import uuid
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel, Field

from agentkit.config import config
from agentkit.core.errors import (
    AgentError,
    ApprovalRequired,
    GuardrailViolation,
    HandoffError,
    ReasoningEngineFailure,
)
from agentkit.core.models import AgentContext, GenerateResult
from agentkit.memory.models import ChatSession, ConversationMessage
from agentkit.memory.provider import InMemoryProvider
from agentkit.orchestration.orchestrator import Orchestrator
from agentkit.runtime import get_memory_provider, get_orchestrator

router = APIRouter(prefix="/chat", tags=["chat"])


class ChatRequest(BaseModel):
    message: str = Field(..., min_length=1, description="User message")
    chat_id: str = Field(
        default_factory=lambda: str(uuid.uuid4()),
        description="Chat identifier for conversation continuity",
    )
    user_id: Optional[str] = Field(default=None, description="Caller identity, used by user-scoped memory")
    agent: Optional[str] = Field(default=None, description="Agent to address; routed by match_on when omitted")


class UsageResponse(BaseModel):
    prompt_tokens: int
    completion_tokens: int
    total_tokens: int


class ChatResponse(BaseModel):
    response: str
    chat_id: str
    agent: str
    handoffs: List[str] = Field(default_factory=list)
    finish_reason: Optional[str] = None
    usage: UsageResponse
    duration_ms: float

    @classmethod
    def from_result(cls, chat_id: str, result: GenerateResult) -> "ChatResponse":
        return cls(
            response=result.text,
            chat_id=chat_id,
            agent=result.agent,
            handoffs=[handoff.target_agent for handoff in result.handoffs],
            finish_reason=result.finish_reason,
            usage=UsageResponse(
                prompt_tokens=result.usage.prompt_tokens,
                completion_tokens=result.usage.completion_tokens,
                total_tokens=result.usage.total_tokens,
            ),
            duration_ms=result.metadata.duration_ms,
        )


def error_detail(exc: AgentError) -> Dict[str, Any]:
    detail: Dict[str, Any] = {"error": type(exc).__name__, "message": str(exc)}
    if isinstance(exc, GuardrailViolation):
        detail.update(guardrail=exc.guardrail, phase=exc.phase, info=exc.info)
    elif isinstance(exc, ApprovalRequired):
        detail.update(tool=exc.tool_name)
    return detail


def status_for(exc: AgentError) -> int:
    if isinstance(exc, GuardrailViolation):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(exc, ApprovalRequired):
        return status.HTTP_409_CONFLICT
    if isinstance(exc, (ReasoningEngineFailure, HandoffError)):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


@router.post("", response_model=ChatResponse)
async def chat(
    request: ChatRequest,
    orchestrator: Orchestrator = Depends(get_orchestrator),
    memory: InMemoryProvider = Depends(get_memory_provider),
) -> ChatResponse:
    """Send a message to an agent and record both sides of the exchange."""
    stored = await memory.get_messages(request.chat_id, limit=config.history_limit)
    history = [message.to_chat_message() for message in stored]
    context = AgentContext(chat_id=request.chat_id, user_id=request.user_id)

    try:
        result = await orchestrator.generate(
            request.message,
            agent_name=request.agent,
            messages=history,
            context=context,
        )
    except LookupError as exc:
        detail = exc.args[0] if exc.args else str(exc)
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=detail) from exc
    except AgentError as exc:
        raise HTTPException(status_code=status_for(exc), detail=error_detail(exc)) from exc

    if await memory.get_chat(request.chat_id) is None:
        await memory.save_chat(
            ChatSession(chat_id=request.chat_id, user_id=request.user_id, title=request.message[:50])
        )
    await memory.save_message(
        ConversationMessage(chat_id=request.chat_id, role="user", content=request.message, user_id=request.user_id)
    )
    await memory.save_message(
        ConversationMessage(chat_id=request.chat_id, role="assistant", content=result.text, user_id=request.user_id)
    )
    return ChatResponse.from_result(request.chat_id, result)
