"""Core data models shared across agent components."""
from __future__ import annotations

import inspect
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Awaitable, Callable, ClassVar, Dict, Generic, List, Optional, TypeVar, Union

T = TypeVar("T")


async def maybe_await(value: Any) -> Any:
    """Await ``value`` when a callback handed back a coroutine."""
    if inspect.isawaitable(value):
        return await value
    return value


@dataclass(slots=True)
class AgentContext:
    """Per-call context handed to resolvers, tools and guardrails.

    ``extra`` holds deployment-specific fields; agents document which keys
    they read.
    """

    chat_id: Optional[str] = None
    user_id: Optional[str] = None
    extra: Dict[str, Any] = field(default_factory=dict)

    def get(self, key: str, default: Any = None) -> Any:
        return self.extra.get(key, default)


@dataclass(frozen=True)
class Static(Generic[T]):
    """A configuration value that does not depend on the call context."""

    value: T

    async def resolve(self, context: AgentContext) -> T:
        return self.value


@dataclass(frozen=True)
class Resolver(Generic[T]):
    """A configuration value computed from the call context once per turn."""

    func: Callable[[AgentContext], Union[T, Awaitable[T]]]

    async def resolve(self, context: AgentContext) -> T:
        return await maybe_await(self.func(context))


Source = Union[Static[T], Resolver[T]]


def as_source(value: Any) -> Source:
    if isinstance(value, (Static, Resolver)):
        return value
    if callable(value):
        return Resolver(value)
    return Static(value)


@dataclass(frozen=True, slots=True)
class Usage:
    """Token accounting reported by the reasoning engine."""

    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0

    def __add__(self, other: Usage) -> Usage:
        return Usage(
            prompt_tokens=self.prompt_tokens + other.prompt_tokens,
            completion_tokens=self.completion_tokens + other.completion_tokens,
            total_tokens=self.total_tokens + other.total_tokens,
        )


@dataclass(frozen=True, slots=True)
class HandoffInstruction:
    """Request to transfer the conversation to another agent."""

    target_agent: str
    context: Optional[str] = None
    reason: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"targetAgent": self.target_agent, "context": self.context, "reason": self.reason}


@dataclass(frozen=True, slots=True)
class ToolCallDetails:
    """Metadata about a single tool call, threaded through to ``execute``."""

    tool_call_id: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ToolCallResult:
    tool_call_id: Optional[str]
    tool_name: str
    args: Dict[str, Any]
    result: Any


@dataclass(frozen=True, slots=True)
class Step:
    """One reasoning-engine round and the tool results it produced."""

    tool_results: List[ToolCallResult] = field(default_factory=list)
    text: str = ""
    finish_reason: Optional[str] = None


@dataclass(frozen=True, slots=True)
class EngineResult:
    text: str
    finish_reason: Optional[str] = None
    usage: Usage = field(default_factory=Usage)
    steps: List[Step] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class GenerateMetadata:
    start_time: datetime
    end_time: datetime
    duration_ms: float


@dataclass(frozen=True, slots=True)
class GenerateResult:
    """Outcome of one ``Agent.generate`` turn."""

    output: Any
    text: str
    finish_reason: Optional[str]
    usage: Usage
    metadata: GenerateMetadata
    agent: str
    handoffs: List[HandoffInstruction] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class GuardrailResult:
    tripped: bool
    info: Any = None


@dataclass(frozen=True, slots=True)
class AgentStartEvent:
    agent: str
    round: int = 0
    type: ClassVar[str] = "agent-start"


@dataclass(frozen=True, slots=True)
class AgentEndEvent:
    agent: str
    round: int = 0
    type: ClassVar[str] = "agent-end"


@dataclass(frozen=True, slots=True)
class AgentHandoffEvent:
    from_agent: str
    to_agent: str
    reason: Optional[str] = None
    type: ClassVar[str] = "agent-handoff"


@dataclass(frozen=True, slots=True)
class ToolStartEvent:
    agent: str
    tool_name: str
    args: Dict[str, Any]
    type: ClassVar[str] = "tool-start"


@dataclass(frozen=True, slots=True)
class ToolEndEvent:
    agent: str
    tool_name: str
    result: Any
    type: ClassVar[str] = "tool-end"


@dataclass(frozen=True, slots=True)
class AgentErrorEvent:
    agent: str
    error: BaseException
    type: ClassVar[str] = "agent-error"


AgentEvent = Union[
    AgentStartEvent,
    AgentEndEvent,
    AgentHandoffEvent,
    ToolStartEvent,
    ToolEndEvent,
    AgentErrorEvent,
]
