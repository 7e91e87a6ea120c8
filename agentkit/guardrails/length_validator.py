"""Length bounds for prompts and responses."""
from __future__ import annotations

from typing import Optional

from agentkit.core.models import AgentContext, GuardrailResult
from agentkit.guardrails.base import Guardrail


def _check_length(text: str, label: str, min_length: Optional[int], max_length: Optional[int]) -> GuardrailResult:
    length = len(text)
    if min_length is not None and length < min_length:
        return GuardrailResult(True, {"reason": f"{label} too short", "length": length, "minimum": min_length})
    if max_length is not None and length > max_length:
        return GuardrailResult(True, {"reason": f"{label} too long", "length": length, "maximum": max_length})
    return GuardrailResult(False)


def length_validator_input(*, min_length: Optional[int] = None, max_length: Optional[int] = None) -> Guardrail:
    async def _check(text: str, context: AgentContext) -> GuardrailResult:
        return _check_length(text, "Input", min_length, max_length)

    return Guardrail(name="length-validator-input", execute=_check)


def length_validator_output(*, min_length: Optional[int] = None, max_length: Optional[int] = None) -> Guardrail:
    async def _check(text: str, context: AgentContext) -> GuardrailResult:
        return _check_length(str(text), "Output", min_length, max_length)

    return Guardrail(name="length-validator-output", execute=_check)
