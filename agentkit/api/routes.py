"""HTTP API describing the registered agents."""
from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from pydantic import BaseModel

from agentkit.agents.agent import Agent
from agentkit.orchestration.orchestrator import Orchestrator
from agentkit.runtime import get_orchestrator

router = APIRouter(prefix="/agents", tags=["agents"])


class AgentResponse(BaseModel):
    name: str
    model: str
    handoff_description: Optional[str]
    handoffs: List[str]
    max_turns: int
    default: bool = False

    @classmethod
    def from_agent(cls, agent: Agent, *, default: bool = False) -> "AgentResponse":
        return cls(
            name=agent.name,
            model=agent.model,
            handoff_description=agent.handoff_description,
            handoffs=[target.name for target in agent.get_handoffs()],
            max_turns=agent.max_turns,
            default=default,
        )


@router.get("", response_model=List[AgentResponse])
async def list_agents(orchestrator: Orchestrator = Depends(get_orchestrator)) -> List[AgentResponse]:
    return [
        AgentResponse.from_agent(agent, default=agent.name == orchestrator.default_agent)
        for agent in orchestrator.list_agents()
    ]


@router.get("/{name}", response_model=AgentResponse)
async def get_agent(name: str, orchestrator: Orchestrator = Depends(get_orchestrator)) -> AgentResponse:
    agent = orchestrator.get_agent(name)
    if agent is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Unknown agent")
    return AgentResponse.from_agent(agent, default=agent.name == orchestrator.default_agent)
