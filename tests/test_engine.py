"""Tests for the OpenAI reasoning engine against a fake client."""
from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace
from typing import Any, Dict, List, Optional

import pytest
from pydantic import BaseModel

from agentkit.agents.agent import Agent
from agentkit.core.errors import ApprovalRequired, InvalidToolArguments, ReasoningEngineFailure, ToolExecutionError
from agentkit.core.events import EventRecorder
from agentkit.core.models import AgentContext, HandoffInstruction
from agentkit.services.engine import OpenAIReasoningEngine, serialize_tool_result
from agentkit.services.llm_pool import LLMPool
from agentkit.tools.tool import tool


def tool_call(call_id: str, name: str, arguments: Any) -> SimpleNamespace:
    raw = arguments if isinstance(arguments, str) else json.dumps(arguments)
    return SimpleNamespace(id=call_id, type="function", function=SimpleNamespace(name=name, arguments=raw))


def completion(
    content: Optional[str] = None,
    tool_calls: Optional[List[SimpleNamespace]] = None,
    finish_reason: str = "stop",
) -> SimpleNamespace:
    message = SimpleNamespace(content=content, tool_calls=tool_calls)
    return SimpleNamespace(
        choices=[SimpleNamespace(message=message, finish_reason=finish_reason)],
        usage=SimpleNamespace(prompt_tokens=7, completion_tokens=3, total_tokens=10),
    )


class FakeCompletions:
    def __init__(self, responses: List[Any]) -> None:
        self.responses = list(responses)
        self.requests: List[Dict[str, Any]] = []

    async def create(self, **kwargs: Any) -> Any:
        self.requests.append({**kwargs, "messages": list(kwargs["messages"])})
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response


class FakeClient:
    def __init__(self, *responses: Any) -> None:
        self.chat = SimpleNamespace(completions=FakeCompletions(list(responses)))

    @property
    def requests(self) -> List[Dict[str, Any]]:
        return self.chat.completions.requests


class CityParams(BaseModel):
    city: str


@tool("get_weather", "Get current weather", CityParams)
async def get_weather(params, context, details):
    return f"{params.city}: sunny ({details.tool_call_id})"


def engine_for(client: FakeClient) -> OpenAIReasoningEngine:
    pool = LLMPool()
    pool.register_client("test-model", client, max_concurrent=2)
    return OpenAIReasoningEngine(pool)


async def run(engine: OpenAIReasoningEngine, tools: Dict[str, Any], max_steps: int = 10, **kwargs: Any):
    return await engine.run(
        model="test-model",
        messages=[{"role": "system", "content": "x"}, {"role": "user", "content": "weather in Tokyo"}],
        tools=tools,
        context=AgentContext(),
        max_steps=max_steps,
        **kwargs,
    )


@pytest.mark.anyio
async def test_tool_round_then_answer() -> None:
    client = FakeClient(
        completion(tool_calls=[tool_call("call_a", "get_weather", {"city": "Tokyo"})], finish_reason="tool_calls"),
        completion(content="It is sunny in Tokyo."),
    )
    engine = engine_for(client)

    result = await run(engine, {"get_weather": get_weather}, temperature=0.1, settings={"max_tokens": 50})

    assert result.text == "It is sunny in Tokyo."
    assert result.finish_reason == "stop"
    assert result.usage.total_tokens == 20
    assert len(result.steps) == 2
    assert result.steps[0].tool_results[0].result == "Tokyo: sunny (call_a)"
    assert result.steps[0].tool_results[0].args == {"city": "Tokyo"}

    first, second = client.requests
    assert first["model"] == "test-model"
    assert first["temperature"] == 0.1
    assert first["max_tokens"] == 50
    assert first["tools"][0]["function"]["name"] == "get_weather"
    assert second["messages"][-2]["tool_calls"][0]["id"] == "call_a"
    assert second["messages"][-1] == {"role": "tool", "tool_call_id": "call_a", "content": "Tokyo: sunny (call_a)"}


@pytest.mark.anyio
async def test_no_tools_omits_tools_parameter() -> None:
    client = FakeClient(completion(content="hello"))
    result = await run(engine_for(client), {})

    assert result.text == "hello"
    assert "tools" not in client.requests[0]
    assert "temperature" not in client.requests[0]


@pytest.mark.anyio
async def test_round_ceiling() -> None:
    looping = [
        completion(tool_calls=[tool_call(f"call_{i}", "get_weather", {"city": "Oslo"})], finish_reason="tool_calls")
        for i in range(5)
    ]
    client = FakeClient(*looping)

    result = await run(engine_for(client), {"get_weather": get_weather}, max_steps=2)

    assert len(client.requests) == 2
    assert len(result.steps) == 2
    assert result.finish_reason == "tool_calls"


@pytest.mark.anyio
async def test_malformed_arguments() -> None:
    client = FakeClient(completion(tool_calls=[tool_call("c1", "get_weather", "{not json")], finish_reason="tool_calls"))
    with pytest.raises(InvalidToolArguments):
        await run(engine_for(client), {"get_weather": get_weather})

    client = FakeClient(completion(tool_calls=[tool_call("c1", "get_weather", {"town": "Oslo"})], finish_reason="tool_calls"))
    with pytest.raises(InvalidToolArguments) as excinfo:
        await run(engine_for(client), {"get_weather": get_weather})
    assert excinfo.value.tool_name == "get_weather"


@pytest.mark.anyio
async def test_unknown_tool_and_tool_crash() -> None:
    client = FakeClient(completion(tool_calls=[tool_call("c1", "launch", {})], finish_reason="tool_calls"))
    with pytest.raises(ReasoningEngineFailure, match="launch"):
        await run(engine_for(client), {"get_weather": get_weather})

    @tool("explode", "Always fails", CityParams)
    def explode(params, context, details):
        raise RuntimeError("kaboom")

    client = FakeClient(completion(tool_calls=[tool_call("c1", "explode", {"city": "x"})], finish_reason="tool_calls"))
    with pytest.raises(ToolExecutionError, match="kaboom"):
        await run(engine_for(client), {"explode": explode})


@pytest.mark.anyio
async def test_provider_errors_and_unregistered_models() -> None:
    client = FakeClient(ConnectionError("reset by peer"))
    with pytest.raises(ReasoningEngineFailure, match="reset by peer"):
        await run(engine_for(client), {})

    engine = OpenAIReasoningEngine(LLMPool())
    with pytest.raises(ReasoningEngineFailure, match="not registered"):
        await run(engine, {})


@pytest.mark.anyio
async def test_agent_over_openai_engine() -> None:
    client = FakeClient(
        completion(tool_calls=[tool_call("call_a", "get_weather", {"city": "Tokyo"})], finish_reason="tool_calls"),
        completion(content="Sunny in Tokyo."),
    )
    agent = Agent(name="A", instructions="x", engine=engine_for(client), model="test-model", tools=[get_weather])

    result = await agent.generate("weather in Tokyo")

    assert result.text == "Sunny in Tokyo."
    assert result.usage.total_tokens == 20


@pytest.mark.anyio
async def test_failed_round_cancels_sibling_tool_calls() -> None:
    ran: List[str] = []

    @tool("slow_lookup", "Slow lookup", CityParams)
    async def slow_lookup(params, context, details):
        await asyncio.sleep(0.05)
        ran.append(params.city)
        return "done"

    @tool("delete_city", "Delete a city", CityParams, needs_approval=True)
    def delete_city(params, context, details):
        ran.append("deleted")
        return "deleted"

    client = FakeClient(
        completion(
            tool_calls=[
                tool_call("c1", "slow_lookup", {"city": "Oslo"}),
                tool_call("c2", "delete_city", {"city": "Oslo"}),
            ],
            finish_reason="tool_calls",
        )
    )
    recorder = EventRecorder()
    agent = Agent(
        name="A",
        instructions="x",
        engine=engine_for(client),
        model="test-model",
        tools=[slow_lookup, delete_city],
        on_event=recorder,
    )

    with pytest.raises(ApprovalRequired):
        await agent.generate("clean up Oslo")
    await asyncio.sleep(0.1)

    assert ran == []
    assert recorder.types() == ["agent-start", "tool-start", "agent-error"]


def test_serialize_tool_result() -> None:
    assert serialize_tool_result("plain") == "plain"
    assert json.loads(serialize_tool_result(HandoffInstruction("Math"))) == {
        "targetAgent": "Math",
        "context": None,
        "reason": None,
    }
    assert json.loads(serialize_tool_result(CityParams(city="Oslo"))) == {"city": "Oslo"}
    assert json.loads(serialize_tool_result({"n": 1})) == {"n": 1}


def test_pool_model_ids() -> None:
    pool = LLMPool()
    pool.register_client("alias", object())
    assert "alias" in pool
    assert pool.models() == ["alias"]
    assert pool.model_id("alias") == "alias"
