"""Handoff tool and helpers for transferring control between agents.

The handoff tool does not move control itself: invoking it returns a
:class:`HandoffInstruction`, which the calling agent recognises in the tool
results once the exchange is over and then follows.
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable, Dict, List, Literal, Mapping, Optional, Sequence, Type, Union

from pydantic import BaseModel, ConfigDict, Field, create_model

from agentkit.core.models import AgentContext, HandoffInstruction, ToolCallDetails
from agentkit.tools.tool import Tool

if TYPE_CHECKING:
    from agentkit.agents.agent import Agent

HANDOFF_TOOL_NAME = "handoff_to_agent"


@dataclass(frozen=True)
class HandoffInputData:
    """Conversation handed to the target agent, open to ``input_filter``."""

    input_history: List[Dict[str, Any]] = field(default_factory=list)
    pre_handoff_items: List[Dict[str, Any]] = field(default_factory=list)
    new_items: List[Dict[str, Any]] = field(default_factory=list)
    run_context: Optional[AgentContext] = None

    def messages(self) -> List[Dict[str, Any]]:
        return [*self.input_history, *self.pre_handoff_items, *self.new_items]


@dataclass(frozen=True)
class HandoffConfig:
    on_handoff: Optional[Callable[[AgentContext], Any]] = None
    input_filter: Optional[Callable[[HandoffInputData], HandoffInputData]] = None


@dataclass(frozen=True)
class ConfiguredHandoff:
    """A downstream agent together with its handoff configuration."""

    agent: Agent
    config: HandoffConfig = field(default_factory=HandoffConfig)

    @property
    def name(self) -> str:
        return self.agent.name


def handoff(agent: Agent, config: Optional[HandoffConfig] = None) -> ConfiguredHandoff:
    """Wrap an agent with handoff configuration."""
    return ConfiguredHandoff(agent=agent, config=config or HandoffConfig())


def as_configured(target: Union[Agent, ConfiguredHandoff]) -> ConfiguredHandoff:
    if isinstance(target, ConfiguredHandoff):
        return target
    return ConfiguredHandoff(agent=target)


def create_handoff(
    target_agent: Union[Agent, str],
    context: Optional[str] = None,
    reason: Optional[str] = None,
) -> HandoffInstruction:
    target_name = target_agent if isinstance(target_agent, str) else target_agent.name
    return HandoffInstruction(target_agent=target_name, context=context, reason=reason)


def transfer_message(agent: Union[Agent, str]) -> str:
    """Tool output announcing which agent now owns the conversation."""
    name = agent if isinstance(agent, str) else agent.name
    return json.dumps({"assistant": name})


def handoff_parameters(agent_names: Sequence[str]) -> Type[BaseModel]:
    """Parameter model whose ``targetAgent`` only accepts ``agent_names``."""
    if not agent_names:
        raise ValueError("A handoff tool needs at least one target agent")
    target_type = Literal[tuple(agent_names)]  # type: ignore[valid-type]
    return create_model(
        "HandoffParameters",
        __config__=ConfigDict(populate_by_name=True, extra="forbid"),
        target_agent=(target_type, Field(alias="targetAgent", description="Agent to transfer the conversation to")),
        context=(Optional[str], Field(default=None, description="Context or summary to pass to the target agent")),
        reason=(Optional[str], Field(default=None, description="Reason for the handoff")),
    )


def create_handoff_tool(handoffs: Sequence[Union[Agent, ConfiguredHandoff]]) -> Tool:
    """Create the tool that agents use to transfer control."""
    configured = [as_configured(h) for h in handoffs]
    names = [h.name for h in configured]

    lines = ["Transfer the conversation to another specialized agent.", "", f"Available agents: {', '.join(names)}"]
    for entry in configured:
        description = getattr(entry.agent, "handoff_description", None)
        if description:
            lines.append(f"- {entry.name}: {description}")

    async def _execute(params: Any, context: AgentContext, details: Optional[ToolCallDetails]) -> HandoffInstruction:
        return create_handoff(params.target_agent, params.context, params.reason)

    return Tool(
        name=HANDOFF_TOOL_NAME,
        description="\n".join(lines),
        parameters=handoff_parameters(names),
        execute=_execute,
    )


def is_handoff_tool(tool_name: Optional[str]) -> bool:
    return tool_name == HANDOFF_TOOL_NAME


def is_handoff_result(result: Any) -> bool:
    """Whether a tool result carries a handoff instruction."""
    if isinstance(result, HandoffInstruction):
        return True
    return isinstance(result, Mapping) and isinstance(result.get("targetAgent"), str)


def as_instruction(result: Any) -> HandoffInstruction:
    if isinstance(result, HandoffInstruction):
        return result
    return HandoffInstruction(
        target_agent=result["targetAgent"],
        context=result.get("context"),
        reason=result.get("reason"),
    )
