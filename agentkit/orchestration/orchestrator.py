"""Orchestrator: a registry of agents with ``match_on`` routing."""
from __future__ import annotations

import asyncio
import logging
from typing import Dict, Iterable, List, Optional, Sequence

from agentkit.agents.agent import Agent
from agentkit.core.models import AgentContext, GenerateResult

logger = logging.getLogger(__name__)


def reachable_agents(roots: Iterable[Agent]) -> List[Agent]:
    """Every agent reachable from ``roots`` through handoffs, roots first."""
    seen: Dict[int, Agent] = {}
    stack = list(roots)[::-1]
    while stack:
        agent = stack.pop()
        if id(agent) in seen:
            continue
        seen[id(agent)] = agent
        stack.extend(reversed(agent.get_handoffs()))
    return list(seen.values())


def validate_unique_names(agents: Iterable[Agent]) -> None:
    """Raise ``ValueError`` if two distinct reachable agents share a name."""
    names: Dict[str, Agent] = {}
    for agent in reachable_agents(agents):
        existing = names.get(agent.name)
        if existing is not None and existing is not agent:
            raise ValueError(f"Agent name '{agent.name}' is used by more than one reachable agent")
        names[agent.name] = agent


class Orchestrator:
    """Hold the top-level agents and pick one for each incoming message."""

    def __init__(self, agents: Sequence[Agent] = (), *, default_agent: Optional[str] = None) -> None:
        self._agents: Dict[str, Agent] = {}
        self._lock = asyncio.Lock()
        for agent in agents:
            self._add(agent)
        if default_agent is not None and default_agent not in self._agents:
            raise KeyError(f"Default agent '{default_agent}' is not registered")
        self.default_agent = default_agent

    def _add(self, agent: Agent) -> None:
        if agent.name in self._agents:
            raise ValueError(f"Agent '{agent.name}' already registered")
        validate_unique_names([*self._agents.values(), agent])
        self._agents[agent.name] = agent

    async def register(self, agent: Agent) -> None:
        async with self._lock:
            self._add(agent)
        logger.info("Registered agent %s", agent.name)

    async def unregister(self, name: str) -> None:
        async with self._lock:
            agent = self._agents.pop(name, None)
            if agent is not None and self.default_agent == name:
                self.default_agent = None
        if agent is not None:
            logger.info("Unregistered agent %s", name)

    def list_agents(self) -> Iterable[Agent]:
        return iter(list(self._agents.values()))

    def get_agent(self, name: str) -> Optional[Agent]:
        """Look up a registered agent or any agent reachable through handoffs."""
        agent = self._agents.get(name)
        if agent is not None:
            return agent
        for candidate in reachable_agents(self._agents.values()):
            if candidate.name == name:
                return candidate
        return None

    def route(self, message: str) -> Agent:
        """First registered agent whose ``match_on`` accepts ``message``, else the default."""
        for agent in self._agents.values():
            if agent.matches(message):
                return agent
        if self.default_agent is not None:
            return self._agents[self.default_agent]
        raise LookupError("No agent matches the message and no default agent is configured")

    async def generate(
        self,
        message: str,
        *,
        agent_name: Optional[str] = None,
        messages: Optional[Sequence[Dict[str, str]]] = None,
        context: Optional[AgentContext] = None,
    ) -> GenerateResult:
        """Run one turn on the named agent, or on the routed one."""
        if agent_name is not None:
            agent = self.get_agent(agent_name)
            if agent is None:
                raise KeyError(f"No agent named '{agent_name}'")
        else:
            agent = self.route(message)
        logger.debug("Dispatching message to %s", agent.name)
        return await agent.generate(message, messages=messages, context=context)
