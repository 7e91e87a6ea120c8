"""Agent definition and the single-turn ``generate`` state machine."""
from __future__ import annotations

import logging
import re
import time
from dataclasses import replace
from datetime import datetime, timezone
from typing import (
    TYPE_CHECKING,
    Any,
    Callable,
    Dict,
    List,
    Mapping,
    Optional,
    Pattern,
    Sequence,
    Tuple,
    Type,
    Union,
)

from pydantic import BaseModel, ValidationError

from agentkit.config import config
from agentkit.core.errors import (
    AgentError,
    HandoffError,
    OutputValidationError,
    ReasoningEngineFailure,
    ResolutionFailure,
)
from agentkit.core.events import EventSink, emit_event
from agentkit.core.models import (
    AgentContext,
    AgentEndEvent,
    AgentErrorEvent,
    AgentHandoffEvent,
    AgentStartEvent,
    EngineResult,
    GenerateMetadata,
    GenerateResult,
    HandoffInstruction,
    Resolver,
    Static,
    ToolCallDetails,
    ToolEndEvent,
    ToolStartEvent,
    as_source,
    maybe_await,
)
from agentkit.guardrails.base import Guardrail, GuardrailPhase, run_guardrails
from agentkit.tools.handoff import (
    HANDOFF_TOOL_NAME,
    ConfiguredHandoff,
    HandoffInputData,
    as_configured,
    as_instruction,
    create_handoff_tool,
    is_handoff_result,
)
from agentkit.tools.tool import Tool, is_tool_enabled

if TYPE_CHECKING:
    from agentkit.services.engine import ReasoningEngine

logger = logging.getLogger(__name__)

Message = Dict[str, Any]
ToolSet = Union[Mapping[str, Tool], Sequence[Tool]]
MatchOn = Union[Sequence[Union[str, Pattern[str]]], Callable[[str], bool]]


def normalize_tools(tools: Optional[ToolSet]) -> Dict[str, Tool]:
    """Key tools by name, rejecting the reserved handoff tool name.

    Mapping keys win over ``Tool.name`` so a tool can be exposed under an alias.
    """
    if not tools:
        return {}
    if isinstance(tools, Mapping):
        items = [(key, tool_def if tool_def.name == key else replace(tool_def, name=key)) for key, tool_def in tools.items()]
    else:
        items = [(tool_def.name, tool_def) for tool_def in tools]

    resolved: Dict[str, Tool] = {}
    for name, tool_def in items:
        if name == HANDOFF_TOOL_NAME:
            raise ValueError(f'Tool name "{HANDOFF_TOOL_NAME}" is reserved for handoffs')
        if name in resolved:
            raise ValueError(f'Duplicate tool name "{name}"')
        resolved[name] = tool_def
    return resolved


class Agent:
    """A configured reasoning unit.

    Agents hold immutable configuration only, so ``generate`` may run
    concurrently for the same instance. ``instructions`` and ``tools`` may be
    plain values or callables of the :class:`AgentContext` (sync or async);
    callables are resolved once per turn.
    """

    def __init__(
        self,
        *,
        name: str,
        instructions: Any,
        engine: ReasoningEngine,
        model: Optional[str] = None,
        tools: Any = None,
        handoffs: Optional[Sequence[Union[Agent, ConfiguredHandoff]]] = None,
        handoff_description: Optional[str] = None,
        input_guardrails: Sequence[Guardrail] = (),
        output_guardrails: Sequence[Guardrail] = (),
        max_turns: int = 10,
        temperature: Optional[float] = None,
        model_settings: Optional[Mapping[str, Any]] = None,
        match_on: Optional[MatchOn] = None,
        on_event: Optional[EventSink] = None,
        output_type: Optional[Type[BaseModel]] = None,
        last_messages: Optional[int] = None,
        max_handoff_depth: int = 5,
    ) -> None:
        if not name:
            raise ValueError("Agent name must not be empty")
        if max_turns < 1:
            raise ValueError("max_turns must be at least 1")
        if last_messages is not None and last_messages < 0:
            raise ValueError("last_messages must not be negative")

        self.name = name
        self.model = model or config.default_model
        self.engine = engine
        self.handoff_description = handoff_description
        self.input_guardrails: Tuple[Guardrail, ...] = tuple(input_guardrails)
        self.output_guardrails: Tuple[Guardrail, ...] = tuple(output_guardrails)
        self.max_turns = max_turns
        self.temperature = temperature
        self.model_settings: Dict[str, Any] = dict(model_settings or {})
        self.match_on = match_on
        self.on_event = on_event
        self.output_type = output_type
        self.last_messages = last_messages
        self.max_handoff_depth = max_handoff_depth

        self._instructions = as_source(instructions)
        if isinstance(tools, (Static, Resolver)) or (callable(tools) and not isinstance(tools, Mapping)):
            self._tools = as_source(tools)
        else:
            self._tools = as_source(normalize_tools(tools))

        self._handoffs: Tuple[ConfiguredHandoff, ...] = tuple(as_configured(h) for h in handoffs or ())
        self._handoff_index: Dict[str, ConfiguredHandoff] = {}
        for entry in self._handoffs:
            if entry.name in self._handoff_index:
                raise ValueError(f'Agent "{name}" lists handoff target "{entry.name}" more than once')
            self._handoff_index[entry.name] = entry
        self._handoff_tool = create_handoff_tool(self._handoffs) if self._handoffs else None

    @classmethod
    def create(cls, **kwargs: Any) -> Agent:
        return cls(**kwargs)

    def __repr__(self) -> str:
        return f"Agent(name={self.name!r}, model={self.model!r})"

    def get_handoffs(self) -> List[Agent]:
        return [entry.agent for entry in self._handoffs]

    def get_configured_handoffs(self) -> List[ConfiguredHandoff]:
        return list(self._handoffs)

    def matches(self, message: str) -> bool:
        """Whether ``match_on`` routes ``message`` to this agent."""
        if self.match_on is None:
            return False
        if callable(self.match_on):
            return bool(self.match_on(message))
        lowered = message.lower()
        for pattern in self.match_on:
            if isinstance(pattern, str):
                if pattern.lower() in lowered:
                    return True
            elif isinstance(pattern, re.Pattern) and pattern.search(message):
                return True
        return False

    async def generate(
        self,
        prompt: str,
        *,
        messages: Optional[Sequence[Message]] = None,
        context: Optional[AgentContext] = None,
    ) -> GenerateResult:
        """Run one full turn: guardrails, resolution, exchange, handoff, guardrails."""
        return await self._run_turn(prompt, list(messages or []), context or AgentContext(), depth=0)

    async def _run_turn(
        self,
        prompt: str,
        history: List[Message],
        context: AgentContext,
        depth: int,
    ) -> GenerateResult:
        start_time = datetime.now(timezone.utc)
        started = time.perf_counter()

        try:
            await run_guardrails(self.input_guardrails, prompt, context, phase=GuardrailPhase.INPUT)
            await emit_event(self.on_event, AgentStartEvent(agent=self.name, round=0))

            instructions, tools = await self._resolve(context)
            result = await self._exchange(self._build_messages(instructions, history, prompt), tools, context)

            text = result.text
            finish_reason = result.finish_reason
            usage = result.usage
            producer = self.name
            followed: List[HandoffInstruction] = []
            delegated: Optional[GenerateResult] = None

            found = self.collect_handoffs(result)
            if found:
                delegated = await self._delegate(found, prompt, history, result.text, context, depth)
                text = delegated.text
                finish_reason = delegated.finish_reason
                usage = usage + delegated.usage
                producer = delegated.agent
                followed = [found[0], *delegated.handoffs]

            await run_guardrails(self.output_guardrails, text, context, phase=GuardrailPhase.OUTPUT)
            if delegated is not None and self.output_type is None:
                output = delegated.output
            else:
                output = self._parse_output(text)
            await emit_event(self.on_event, AgentEndEvent(agent=self.name, round=0))
        except Exception as exc:
            await emit_event(self.on_event, AgentErrorEvent(agent=self.name, error=exc))
            raise

        end_time = datetime.now(timezone.utc)
        return GenerateResult(
            output=output,
            text=text,
            finish_reason=finish_reason,
            usage=usage,
            metadata=GenerateMetadata(
                start_time=start_time,
                end_time=end_time,
                duration_ms=(time.perf_counter() - started) * 1000,
            ),
            agent=producer,
            handoffs=followed,
        )

    async def _resolve(self, context: AgentContext) -> Tuple[str, Dict[str, Tool]]:
        """Resolve instructions and the enabled tool set for this turn."""
        try:
            instructions = await self._instructions.resolve(context)
            resolved = normalize_tools(await self._tools.resolve(context))
            enabled = {name: tool_def for name, tool_def in resolved.items() if await is_tool_enabled(tool_def, context)}
        except AgentError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise ResolutionFailure(self.name, f"could not resolve instructions or tools: {exc}") from exc

        if not isinstance(instructions, str):
            raise ResolutionFailure(self.name, f"instructions resolved to {type(instructions).__name__}, expected str")

        dropped = set(resolved) - set(enabled)
        if dropped:
            logger.debug("Agent %s: disabled tools dropped: %s", self.name, sorted(dropped))

        tools = {name: self._observe(tool_def) for name, tool_def in enabled.items()}
        if self._handoff_tool is not None:
            tools[HANDOFF_TOOL_NAME] = self._observe(self._handoff_tool)
        return instructions, tools

    def _observe(self, tool_def: Tool) -> Tool:
        """Wrap ``tool_def`` so each call emits tool-start and tool-end."""
        execute = tool_def.execute

        async def _execute(params: BaseModel, context: AgentContext, details: Optional[ToolCallDetails]) -> Any:
            await emit_event(
                self.on_event,
                ToolStartEvent(agent=self.name, tool_name=tool_def.name, args=params.model_dump(by_alias=True)),
            )
            result = await maybe_await(execute(params, context, details))
            await emit_event(self.on_event, ToolEndEvent(agent=self.name, tool_name=tool_def.name, result=result))
            return result

        return tool_def.with_execute(_execute)

    def _build_messages(self, instructions: str, history: Sequence[Message], prompt: str) -> List[Message]:
        if self.last_messages is not None:
            history = history[len(history) - self.last_messages :] if self.last_messages else []
        return [
            {"role": "system", "content": instructions},
            *history,
            {"role": "user", "content": prompt},
        ]

    async def _exchange(self, messages: List[Message], tools: Dict[str, Tool], context: AgentContext) -> EngineResult:
        try:
            return await self.engine.run(
                model=self.model,
                messages=messages,
                tools=tools,
                context=context,
                max_steps=self.max_turns,
                temperature=self.temperature,
                settings=self.model_settings,
            )
        except AgentError:
            raise
        except Exception as exc:  # noqa: BLE001
            raise ReasoningEngineFailure(f'Agent "{self.name}" reasoning engine failed: {exc}') from exc

    @staticmethod
    def collect_handoffs(result: EngineResult) -> List[HandoffInstruction]:
        """Handoff instructions found in any step's tool results, in call order."""
        return [
            as_instruction(call.result)
            for step in result.steps
            for call in step.tool_results
            if is_handoff_result(call.result)
        ]

    async def _delegate(
        self,
        found: List[HandoffInstruction],
        prompt: str,
        history: List[Message],
        interim_text: str,
        context: AgentContext,
        depth: int,
    ) -> GenerateResult:
        instruction = found[0]
        if len(found) > 1:
            logger.warning(
                "Agent %s requested %d handoffs in one turn; following %s",
                self.name,
                len(found),
                instruction.target_agent,
            )
        if depth >= self.max_handoff_depth:
            raise HandoffError(f'Handoff depth limit {self.max_handoff_depth} reached at agent "{self.name}"')
        target = self._handoff_index.get(instruction.target_agent)
        if target is None:
            raise HandoffError(f'Agent "{self.name}" has no handoff target named "{instruction.target_agent}"')

        logger.info("Handoff %s -> %s (%s)", self.name, target.name, instruction.reason or "no reason given")
        await emit_event(
            self.on_event,
            AgentHandoffEvent(from_agent=self.name, to_agent=target.name, reason=instruction.reason),
        )
        if target.config.on_handoff is not None:
            await maybe_await(target.config.on_handoff(context))

        note = f"Conversation transferred from {self.name} to {target.name}."
        if instruction.reason:
            note += f" Reason: {instruction.reason}"
        if instruction.context:
            note += f"\nContext: {instruction.context}"
        data = HandoffInputData(
            input_history=list(history),
            pre_handoff_items=[{"role": "assistant", "content": interim_text}] if interim_text else [],
            new_items=[{"role": "system", "content": note}],
            run_context=context,
        )
        if target.config.input_filter is not None:
            data = await maybe_await(target.config.input_filter(data))

        return await target.agent._run_turn(prompt, data.messages(), context, depth + 1)

    def _parse_output(self, text: str) -> Any:
        if self.output_type is None:
            return text
        try:
            return self.output_type.model_validate_json(text)
        except ValidationError as exc:
            raise OutputValidationError(
                f'Agent "{self.name}" output does not match {self.output_type.__name__}: {exc}'
            ) from exc
