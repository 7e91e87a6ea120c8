"""Tool definition with validation, approval and enablement gating."""
from __future__ import annotations

import logging
from dataclasses import dataclass, replace
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Type, Union

from pydantic import BaseModel, ValidationError

from agentkit.core.errors import ApprovalRequired, InvalidToolArguments
from agentkit.core.models import AgentContext, ToolCallDetails, maybe_await

logger = logging.getLogger(__name__)

ToolExecute = Callable[[Any, AgentContext, Optional[ToolCallDetails]], Any]
ApprovalPredicate = Union[bool, Callable[[AgentContext, Any], Union[bool, Awaitable[bool]]]]
EnabledPredicate = Union[bool, Callable[[AgentContext], Union[bool, Awaitable[bool]]]]


@dataclass(frozen=True)
class Tool:
    """A capability the reasoning engine may invoke."""

    name: str
    description: str
    parameters: Type[BaseModel]
    execute: ToolExecute
    needs_approval: ApprovalPredicate = False
    is_enabled: EnabledPredicate = True
    strict: bool = False

    def validate(self, arguments: Union[Mapping[str, Any], BaseModel]) -> BaseModel:
        if isinstance(arguments, self.parameters):
            return arguments
        if isinstance(arguments, BaseModel):
            arguments = arguments.model_dump(by_alias=True)
        try:
            return self.parameters.model_validate(dict(arguments))
        except ValidationError as exc:
            raise InvalidToolArguments(self.name, exc.errors(include_url=False)) from exc

    async def invoke(
        self,
        arguments: Union[Mapping[str, Any], BaseModel],
        context: AgentContext,
        details: Optional[ToolCallDetails] = None,
    ) -> Any:
        """Validate, check approval, then run ``execute``."""
        params = self.validate(arguments)
        if await requires_approval(self, context, params):
            logger.info("Tool %s blocked pending approval", self.name)
            raise ApprovalRequired(self.name, params)
        return await maybe_await(self.execute(params, context, details))

    def with_execute(self, execute: ToolExecute) -> Tool:
        return replace(self, execute=execute)

    def to_openai_function(self) -> Dict[str, Any]:
        """Convert tool to OpenAI function calling format"""
        function: Dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "parameters": self.parameters.model_json_schema(),
        }
        if self.strict:
            function["strict"] = True
        return {"type": "function", "function": function}


def tool(
    name: str,
    description: str,
    parameters: Type[BaseModel],
    execute: Optional[ToolExecute] = None,
    *,
    needs_approval: ApprovalPredicate = False,
    is_enabled: EnabledPredicate = True,
    strict: bool = False,
) -> Any:
    """Create a :class:`Tool`.

    Without ``execute`` this returns a decorator::

        @tool("get_weather", "Get current weather", WeatherParams)
        async def get_weather(params, context, details):
            ...
    """

    def _build(func: ToolExecute) -> Tool:
        return Tool(
            name=name,
            description=description,
            parameters=parameters,
            execute=func,
            needs_approval=needs_approval,
            is_enabled=is_enabled,
            strict=strict,
        )

    if execute is None:
        return _build
    return _build(execute)


async def requires_approval(tool_def: Tool, context: AgentContext, params: BaseModel) -> bool:
    if isinstance(tool_def.needs_approval, bool):
        return tool_def.needs_approval
    return bool(await maybe_await(tool_def.needs_approval(context, params)))


async def is_tool_enabled(tool_def: Tool, context: AgentContext) -> bool:
    if isinstance(tool_def.is_enabled, bool):
        return tool_def.is_enabled
    return bool(await maybe_await(tool_def.is_enabled(context)))
