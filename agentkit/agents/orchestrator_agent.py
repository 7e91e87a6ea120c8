"""Routing agent that hands queries off to the stock specialists."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Dict, Optional, Sequence

from agentkit.agents.agent import Agent
from agentkit.agents.specialists import math_agent, news_agent, weather_agent
from agentkit.cache.cached import CacheOptions

if TYPE_CHECKING:
    from agentkit.services.engine import ReasoningEngine

ORCHESTRATOR_AGENT = "Orchestrator"


def routing_instructions(specialists: Sequence[Agent]) -> str:
    lines = [
        "You are an intelligent orchestrator that routes queries to specialist agents.",
        "",
        "You have access to:",
    ]
    for agent in specialists:
        lines.append(f"- {agent.name}: {agent.handoff_description or 'General assistance'}")
    lines.append("")
    lines.append("Analyze the user's query and hand off to the appropriate specialist.")
    return "\n".join(lines)


def orchestrator_agent(
    engine: ReasoningEngine,
    *,
    specialists: Optional[Sequence[Agent]] = None,
    cache_options: Optional[CacheOptions] = None,
    **overrides: Any,
) -> Agent:
    """Build the orchestrator; without ``specialists`` the stock three are used."""
    shared: Dict[str, Any] = {key: overrides[key] for key in ("model", "on_event") if key in overrides}
    if specialists is None:
        specialists = [
            weather_agent(engine, cache_options=cache_options, **shared),
            news_agent(engine, **shared),
            math_agent(engine, **shared),
        ]
    settings: Dict[str, Any] = dict(
        name=ORCHESTRATOR_AGENT,
        instructions=routing_instructions(specialists),
        handoffs=list(specialists),
    )
    settings.update(overrides)
    return Agent(engine=engine, **settings)
