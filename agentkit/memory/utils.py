"""Helpers that inject working memory into agent instructions."""
from __future__ import annotations

from typing import Awaitable, Callable, Optional

from pydantic import BaseModel, Field

from agentkit.core.models import AgentContext, ToolCallDetails
from agentkit.memory.models import MemoryProvider, MemoryScope, WorkingMemory
from agentkit.tools.tool import Tool

DEFAULT_TEMPLATE = """
# Working Memory

## User Preferences
- [List user preferences here]

## Important Facts
- [List important facts to remember]

## Context
- [List relevant context]
""".strip()

UPDATE_TOOL_NAME = "update_working_memory"


def format_working_memory(memory: WorkingMemory) -> str:
    """Format working memory for injection into a system prompt."""
    return (
        f"<working-memory>\n{memory.content}\n</working-memory>\n\n"
        f"Last updated: {memory.updated_at.isoformat()}"
    )


def get_working_memory_instructions(template: str = DEFAULT_TEMPLATE) -> str:
    return (
        "You have access to a working memory system that persists across conversations.\n"
        f"Use the {UPDATE_TOOL_NAME} tool to save important information about the user,\n"
        "their preferences, or context that should be remembered.\n\n"
        f"Template structure:\n{template}"
    )


def with_working_memory(
    base_instructions: str,
    provider: MemoryProvider,
    *,
    scope: MemoryScope = MemoryScope.CHAT,
    template: Optional[str] = None,
) -> Callable[[AgentContext], Awaitable[str]]:
    """Build an instructions resolver that appends the stored working memory.

    Pass ``template`` when the agent also gets :func:`update_working_memory_tool`.
    """

    async def _resolve(context: AgentContext) -> str:
        parts = [base_instructions]
        if template is not None:
            parts.append(get_working_memory_instructions(template))
        memory = await provider.get_working_memory(scope=scope, chat_id=context.chat_id, user_id=context.user_id)
        if memory is not None:
            parts.append(format_working_memory(memory))
        return "\n\n".join(parts)

    return _resolve


class WorkingMemoryUpdate(BaseModel):
    content: str = Field(..., description="Full replacement text for the working memory")


def update_working_memory_tool(provider: MemoryProvider, *, scope: MemoryScope = MemoryScope.CHAT) -> Tool:
    async def _execute(params: WorkingMemoryUpdate, context: AgentContext, details: Optional[ToolCallDetails]) -> str:
        await provider.update_working_memory(
            scope=scope,
            content=params.content,
            chat_id=context.chat_id,
            user_id=context.user_id,
        )
        return "Working memory updated."

    return Tool(
        name=UPDATE_TOOL_NAME,
        description="Replace the persisted working memory with updated notes.",
        parameters=WorkingMemoryUpdate,
        execute=_execute,
    )
