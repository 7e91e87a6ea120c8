"""Exceptions raised by an agent turn."""
from __future__ import annotations

import json
from typing import Any, List, Optional


class AgentError(Exception):
    """Base class for failures that abort a turn."""


class GuardrailViolation(AgentError):
    """An input or output guardrail tripped."""

    def __init__(self, guardrail: str, info: Any = None, *, phase: str = "input") -> None:
        self.guardrail = guardrail
        self.info = info
        self.phase = phase
        super().__init__(
            f'{phase.capitalize()} guardrail "{guardrail}" triggered: {json.dumps(info, default=str)}'
        )


class ApprovalRequired(AgentError):
    """A tool that needs approval was invoked; there is no pause/resume."""

    def __init__(self, tool_name: str, params: Any = None) -> None:
        self.tool_name = tool_name
        self.params = params
        super().__init__(f'Tool "{tool_name}" requires approval')


class ReasoningEngineFailure(AgentError):
    """The model call or the tool-calling exchange failed."""


class InvalidToolArguments(ReasoningEngineFailure):
    def __init__(self, tool_name: str, errors: Optional[List[Any]] = None, message: Optional[str] = None) -> None:
        self.tool_name = tool_name
        self.errors = errors or []
        super().__init__(message or f'Invalid arguments for tool "{tool_name}": {self.errors}')


class ToolExecutionError(ReasoningEngineFailure):
    def __init__(self, tool_name: str, cause: BaseException) -> None:
        self.tool_name = tool_name
        super().__init__(f'Tool "{tool_name}" failed: {cause}')


class ResolutionFailure(AgentError):
    """Dynamic instructions or tool set could not be resolved."""

    def __init__(self, agent: str, message: str) -> None:
        self.agent = agent
        super().__init__(f'Agent "{agent}": {message}')


class HandoffError(AgentError):
    """A handoff instruction could not be followed."""


class OutputValidationError(AgentError):
    """The final text did not parse into the agent's output type."""
