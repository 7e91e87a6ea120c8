"""Shared fixtures: anyio backend, a scripted reasoning engine and a fake clock."""
from __future__ import annotations

from typing import Any, Callable, Dict, List, Mapping, Optional, Sequence, Tuple, Union

import pytest

from agentkit.core.errors import ReasoningEngineFailure
from agentkit.core.models import (
    AgentContext,
    EngineResult,
    Step,
    ToolCallDetails,
    ToolCallResult,
    Usage,
)
from agentkit.tools.tool import Tool

ToolCall = Tuple[str, Dict[str, Any]]
Round = Union[str, Sequence[ToolCall], Callable[[List[ToolCallResult]], str]]


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


class ScriptedEngine:
    """Reasoning engine that replays a fixed script on every run.

    Each round is either final text, a callable building the final text from
    the tool results so far, or a list of ``(tool_name, args)`` calls that are
    invoked through the resolved tools like a real engine would.
    """

    def __init__(self, *rounds: Round, usage: Optional[Usage] = None) -> None:
        self.rounds = rounds
        self.usage = usage or Usage(prompt_tokens=10, completion_tokens=5, total_tokens=15)
        self.runs: List[Dict[str, Any]] = []

    @property
    def last_run(self) -> Dict[str, Any]:
        return self.runs[-1]

    async def run(
        self,
        *,
        model: str,
        messages: List[Dict[str, Any]],
        tools: Mapping[str, Tool],
        context: AgentContext,
        max_steps: int,
        temperature: Optional[float] = None,
        settings: Optional[Mapping[str, Any]] = None,
    ) -> EngineResult:
        record: Dict[str, Any] = {
            "model": model,
            "messages": list(messages),
            "tools": dict(tools),
            "context": context,
            "max_steps": max_steps,
            "temperature": temperature,
            "settings": dict(settings or {}),
        }
        self.runs.append(record)

        steps: List[Step] = []
        results: List[ToolCallResult] = []
        text = ""
        finish_reason = "length"
        for index, round_ in enumerate(self.rounds[:max_steps]):
            if isinstance(round_, str) or callable(round_):
                text = round_ if isinstance(round_, str) else round_(results)
                finish_reason = "stop"
                steps.append(Step(text=text, finish_reason=finish_reason))
                break
            step_results = []
            for position, (name, args) in enumerate(round_):
                if name not in tools:
                    raise ReasoningEngineFailure(f"Model requested unknown tool '{name}'")
                call_id = f"call_{index}_{position}"
                result = await tools[name].invoke(args, context, ToolCallDetails(tool_call_id=call_id))
                step_results.append(ToolCallResult(tool_call_id=call_id, tool_name=name, args=args, result=result))
            results.extend(step_results)
            finish_reason = "tool_calls"
            steps.append(Step(tool_results=step_results, finish_reason=finish_reason))

        record["steps"] = steps
        return EngineResult(text=text, finish_reason=finish_reason, usage=self.usage, steps=steps)


class FakeClock:
    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
