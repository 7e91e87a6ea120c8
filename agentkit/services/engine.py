"""Reasoning engine: the bounded tool-calling exchange with a language model."""
from __future__ import annotations

import asyncio
import dataclasses
import json
import logging
from typing import Any, Dict, List, Mapping, Optional, Protocol

from pydantic import BaseModel

from agentkit.core.errors import AgentError, InvalidToolArguments, ReasoningEngineFailure, ToolExecutionError
from agentkit.core.models import AgentContext, EngineResult, HandoffInstruction, Step, ToolCallDetails, ToolCallResult, Usage
from agentkit.services.llm_pool import LLMPool
from agentkit.tools.tool import Tool

logger = logging.getLogger(__name__)


class ReasoningEngine(Protocol):
    """Runs a conversation through at most ``max_steps`` model rounds."""

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
        ...


def serialize_tool_result(result: Any) -> str:
    """Render a tool result as the text fed back to the model."""
    if isinstance(result, str):
        return result
    if isinstance(result, HandoffInstruction):
        return json.dumps(result.to_dict())
    if isinstance(result, BaseModel):
        return result.model_dump_json()
    if dataclasses.is_dataclass(result) and not isinstance(result, type):
        return json.dumps(dataclasses.asdict(result), default=str)
    return json.dumps(result, default=str)


def _usage_from(response: Any) -> Usage:
    usage = getattr(response, "usage", None)
    if usage is None:
        return Usage()
    return Usage(
        prompt_tokens=getattr(usage, "prompt_tokens", 0) or 0,
        completion_tokens=getattr(usage, "completion_tokens", 0) or 0,
        total_tokens=getattr(usage, "total_tokens", 0) or 0,
    )


class OpenAIReasoningEngine:
    """Drives ``chat.completions`` with function tools until the model stops.

    Tool calls requested in one round run concurrently; their results are
    appended as ``tool`` messages before the next round.
    """

    def __init__(self, pool: LLMPool) -> None:
        self._pool = pool

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
        conversation: List[Dict[str, Any]] = list(messages)
        function_defs = [tool_def.to_openai_function() for tool_def in tools.values()]
        usage = Usage()
        steps: List[Step] = []
        text = ""
        finish_reason: Optional[str] = None

        for round_index in range(max_steps):
            response = await self._complete(model, conversation, function_defs, temperature, settings)
            usage = usage + _usage_from(response)
            choice = response.choices[0]
            message = choice.message
            text = message.content or ""
            finish_reason = choice.finish_reason
            tool_calls = list(message.tool_calls or [])

            if not tool_calls:
                steps.append(Step(text=text, finish_reason=finish_reason))
                break

            logger.debug("Round %d: model requested %d tool call(s)", round_index, len(tool_calls))
            conversation.append(
                {
                    "role": "assistant",
                    "content": message.content,
                    "tool_calls": [
                        {
                            "id": call.id,
                            "type": "function",
                            "function": {"name": call.function.name, "arguments": call.function.arguments},
                        }
                        for call in tool_calls
                    ],
                }
            )
            results = await self._call_tools(tools, tool_calls, context)
            for result in results:
                conversation.append(
                    {
                        "role": "tool",
                        "tool_call_id": result.tool_call_id,
                        "content": serialize_tool_result(result.result),
                    }
                )
            steps.append(Step(tool_results=list(results), text=text, finish_reason=finish_reason))
        else:
            logger.info("Model %s hit the %d round ceiling", model, max_steps)

        return EngineResult(text=text, finish_reason=finish_reason, usage=usage, steps=steps)

    async def _complete(
        self,
        model: str,
        conversation: List[Dict[str, Any]],
        function_defs: List[Dict[str, Any]],
        temperature: Optional[float],
        settings: Optional[Mapping[str, Any]],
    ) -> Any:
        request: Dict[str, Any] = {"model": self._pool.model_id(model), "messages": conversation}
        if function_defs:
            request["tools"] = function_defs
        if temperature is not None:
            request["temperature"] = temperature
        request.update(settings or {})
        try:
            async with self._pool.acquire(model) as client:
                return await client.chat.completions.create(**request)
        except Exception as exc:  # noqa: BLE001
            raise ReasoningEngineFailure(f"Model call to '{model}' failed: {exc}") from exc

    async def _call_tools(
        self, tools: Mapping[str, Tool], tool_calls: List[Any], context: AgentContext
    ) -> List[ToolCallResult]:
        """Run one round of tool calls concurrently.

        The first failure cancels the remaining calls and waits for them to
        unwind before it propagates, so no tool outlives a failed round.
        """
        tasks = [asyncio.create_task(self._call_tool(tools, call, context)) for call in tool_calls]
        try:
            return list(await asyncio.gather(*tasks))
        except BaseException:
            for task in tasks:
                task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            raise

    async def _call_tool(self, tools: Mapping[str, Tool], call: Any, context: AgentContext) -> ToolCallResult:
        name = call.function.name
        tool_def = tools.get(name)
        if tool_def is None:
            raise ReasoningEngineFailure(f"Model requested unknown tool '{name}'")

        raw_arguments = call.function.arguments or "{}"
        try:
            arguments = json.loads(raw_arguments)
        except json.JSONDecodeError as exc:
            raise InvalidToolArguments(name, message=f'Tool "{name}" arguments are not valid JSON: {exc}') from exc
        if not isinstance(arguments, dict):
            raise InvalidToolArguments(name, message=f'Tool "{name}" arguments must be a JSON object')

        try:
            result = await tool_def.invoke(arguments, context, ToolCallDetails(tool_call_id=call.id))
        except AgentError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise ToolExecutionError(name, exc) from exc
        return ToolCallResult(tool_call_id=call.id, tool_name=name, args=arguments, result=result)
