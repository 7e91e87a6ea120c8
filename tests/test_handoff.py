"""Tests for the handoff tool and delegation between agents."""
from __future__ import annotations

import json
from typing import Any, List

import pytest
from pydantic import BaseModel, ValidationError

from agentkit.agents.agent import Agent
from agentkit.core.errors import GuardrailViolation, HandoffError, InvalidToolArguments
from agentkit.core.events import EventRecorder
from agentkit.core.models import AgentContext, HandoffInstruction
from agentkit.guardrails.length_validator import length_validator_output
from agentkit.tools.handoff import (
    HANDOFF_TOOL_NAME,
    HandoffConfig,
    HandoffInputData,
    as_instruction,
    create_handoff,
    create_handoff_tool,
    handoff,
    handoff_parameters,
    is_handoff_result,
    is_handoff_tool,
    transfer_message,
)
from agentkit.tools.tool import tool

from conftest import ScriptedEngine


def specialist(name: str, reply: str, **kwargs: Any) -> Agent:
    return Agent(name=name, instructions=f"You are {name}.", engine=ScriptedEngine(reply), **kwargs)


def test_handoff_schema_is_restricted_to_targets() -> None:
    params = handoff_parameters(["Weather", "Math"])

    parsed = params.model_validate({"targetAgent": "Math", "reason": "arithmetic"})
    assert parsed.target_agent == "Math"

    with pytest.raises(ValidationError):
        params.model_validate({"targetAgent": "News"})
    with pytest.raises(ValidationError):
        params.model_validate({"targetAgent": "Math", "priority": "high"})

    schema = params.model_json_schema()
    assert schema["properties"]["targetAgent"]["enum"] == ["Weather", "Math"]
    assert schema["required"] == ["targetAgent"]


@pytest.mark.anyio
async def test_handoff_tool_returns_instruction() -> None:
    weather, math = specialist("Weather", "w"), specialist("Math", "m")
    handoff_tool = create_handoff_tool([weather, handoff(math)])

    assert handoff_tool.name == HANDOFF_TOOL_NAME
    assert "Available agents: Weather, Math" in handoff_tool.description

    result = await handoff_tool.invoke({"targetAgent": "Math", "context": "2+2"}, AgentContext())
    assert result == HandoffInstruction(target_agent="Math", context="2+2")

    with pytest.raises(InvalidToolArguments):
        await handoff_tool.invoke({"targetAgent": "Nobody"}, AgentContext())


def test_handoff_tool_lists_descriptions() -> None:
    weather = specialist("Weather", "w", handoff_description="Weather and climate queries")
    handoff_tool = create_handoff_tool([weather])
    assert "- Weather: Weather and climate queries" in handoff_tool.description


def test_handoff_result_detection() -> None:
    instruction = create_handoff("Math", reason="numbers")
    assert is_handoff_result(instruction)
    assert is_handoff_result({"targetAgent": "Math"})
    assert not is_handoff_result({"targetAgent": 3})
    assert not is_handoff_result("Math")
    assert as_instruction({"targetAgent": "Math", "reason": "r"}) == HandoffInstruction("Math", None, "r")
    assert instruction.to_dict() == {"targetAgent": "Math", "context": None, "reason": "numbers"}
    assert is_handoff_tool(HANDOFF_TOOL_NAME)
    assert not is_handoff_tool("get_weather")


def test_transfer_message_names_new_owner() -> None:
    assert json.loads(transfer_message(specialist("Math", "m"))) == {"assistant": "Math"}
    assert json.loads(transfer_message("Weather")) == {"assistant": "Weather"}


def test_handoff_tool_needs_targets() -> None:
    with pytest.raises(ValueError):
        handoff_parameters([])


def test_duplicate_handoff_targets_rejected() -> None:
    math = specialist("Math", "m")
    with pytest.raises(ValueError):
        Agent(name="O", instructions="x", engine=ScriptedEngine("ok"), handoffs=[math, specialist("Math", "m2")])


@pytest.mark.anyio
async def test_orchestrator_delegates_to_math() -> None:
    recorder = EventRecorder()
    weather = specialist("Weather", "It is sunny.")
    math = specialist("Math", "Result: 4", on_event=recorder)
    engine = ScriptedEngine(
        [(HANDOFF_TOOL_NAME, {"targetAgent": "Math", "context": "User asks 2+2", "reason": "arithmetic"})],
        "Handing you to Math.",
    )
    orchestrator = Agent(
        name="Orchestrator",
        instructions="Route queries.",
        engine=engine,
        handoffs=[weather, math],
        on_event=recorder,
    )

    result = await orchestrator.generate("what is 2+2?")

    assert result.text == "Result: 4"
    assert result.agent == "Math"
    assert result.handoffs == [HandoffInstruction("Math", "User asks 2+2", "arithmetic")]
    assert result.usage.total_tokens == 30
    assert HANDOFF_TOOL_NAME in engine.last_run["tools"]

    handoff_event = recorder.of_type("agent-handoff")[0]
    assert (handoff_event.from_agent, handoff_event.to_agent, handoff_event.reason) == (
        "Orchestrator",
        "Math",
        "arithmetic",
    )
    assert recorder.types() == [
        "agent-start",
        "tool-start",
        "tool-end",
        "agent-handoff",
        "agent-start",
        "agent-end",
        "agent-end",
    ]
    assert [event.agent for event in recorder.of_type("agent-end")] == ["Math", "Orchestrator"]

    math_messages = math.engine.last_run["messages"]
    assert math_messages[0] == {"role": "system", "content": "You are Math."}
    assert math_messages[1] == {"role": "assistant", "content": "Handing you to Math."}
    assert math_messages[2]["role"] == "system"
    assert "transferred from Orchestrator to Math" in math_messages[2]["content"]
    assert "User asks 2+2" in math_messages[2]["content"]
    assert math_messages[-1] == {"role": "user", "content": "what is 2+2?"}
    assert weather.engine.runs == []


@pytest.mark.anyio
async def test_handoff_config_hooks() -> None:
    seen: List[Any] = []

    def on_handoff(context: AgentContext) -> None:
        seen.append(context.chat_id)

    def only_new_items(data: HandoffInputData) -> HandoffInputData:
        seen.append(len(data.input_history))
        return HandoffInputData(new_items=data.new_items, run_context=data.run_context)

    math = specialist("Math", "4")
    orchestrator = Agent(
        name="Orchestrator",
        instructions="Route.",
        engine=ScriptedEngine([(HANDOFF_TOOL_NAME, {"targetAgent": "Math"})], ""),
        handoffs=[handoff(math, HandoffConfig(on_handoff=on_handoff, input_filter=only_new_items))],
    )

    history = [{"role": "user", "content": "earlier"}, {"role": "assistant", "content": "reply"}]
    await orchestrator.generate("2+2", messages=history, context=AgentContext(chat_id="c1"))

    assert seen == ["c1", 2]
    roles = [m["role"] for m in math.engine.last_run["messages"]]
    assert roles == ["system", "system", "user"]


@pytest.mark.anyio
async def test_delegated_text_passes_callers_output_guardrails() -> None:
    math = specialist("Math", "A very long delegated answer")
    orchestrator = Agent(
        name="Orchestrator",
        instructions="Route.",
        engine=ScriptedEngine([(HANDOFF_TOOL_NAME, {"targetAgent": "Math"})], ""),
        handoffs=[math],
        output_guardrails=[length_validator_output(max_length=10)],
    )

    with pytest.raises(GuardrailViolation):
        await orchestrator.generate("2+2")


@pytest.mark.anyio
async def test_first_of_several_handoffs_is_followed() -> None:
    weather, math = specialist("Weather", "sunny"), specialist("Math", "4")
    orchestrator = Agent(
        name="Orchestrator",
        instructions="Route.",
        engine=ScriptedEngine(
            [(HANDOFF_TOOL_NAME, {"targetAgent": "Weather"}), (HANDOFF_TOOL_NAME, {"targetAgent": "Math"})],
            "",
        ),
        handoffs=[weather, math],
    )

    result = await orchestrator.generate("both")

    assert result.text == "sunny"
    assert math.engine.runs == []


@pytest.mark.anyio
async def test_nested_delegation_and_depth_limit() -> None:
    leaf = specialist("Leaf", "leaf answer")
    middle = Agent(
        name="Middle",
        instructions="x",
        engine=ScriptedEngine([(HANDOFF_TOOL_NAME, {"targetAgent": "Leaf"})], ""),
        handoffs=[leaf],
    )
    top = Agent(
        name="Top",
        instructions="x",
        engine=ScriptedEngine([(HANDOFF_TOOL_NAME, {"targetAgent": "Middle"})], ""),
        handoffs=[middle],
    )

    result = await top.generate("go")
    assert result.text == "leaf answer"
    assert result.agent == "Leaf"
    assert [h.target_agent for h in result.handoffs] == ["Middle", "Leaf"]

    shallow = Agent(
        name="Top",
        instructions="x",
        engine=ScriptedEngine([(HANDOFF_TOOL_NAME, {"targetAgent": "Middle"})], ""),
        handoffs=[middle],
        max_handoff_depth=0,
    )
    with pytest.raises(HandoffError):
        await shallow.generate("go")


@pytest.mark.anyio
async def test_unknown_handoff_target_from_custom_tool() -> None:
    class Empty(BaseModel):
        pass

    @tool("escalate", "Escalate to a human", Empty)
    def escalate(params, context, details):
        return {"targetAgent": "Human", "reason": "angry customer"}

    recorder = EventRecorder()
    agent = Agent(
        name="Support",
        instructions="x",
        engine=ScriptedEngine([("escalate", {})], "escalating"),
        tools=[escalate],
        handoffs=[specialist("Billing", "b")],
        on_event=recorder,
    )

    with pytest.raises(HandoffError, match="Human"):
        await agent.generate("help")

    assert recorder.types()[-1] == "agent-error"
    assert "agent-handoff" not in recorder.types()


def test_handoff_accessors() -> None:
    weather = specialist("Weather", "w")
    configured = handoff(specialist("Math", "m"))
    orchestrator = Agent(name="O", instructions="x", engine=ScriptedEngine("ok"), handoffs=[weather, configured])

    assert [a.name for a in orchestrator.get_handoffs()] == ["Weather", "Math"]
    entries = orchestrator.get_configured_handoffs()
    assert entries[1] is configured
    assert entries[0].agent is weather
