"""Guardrail contract and the ordered pipeline that runs it."""
from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, Sequence, Union

from agentkit.core.errors import GuardrailViolation
from agentkit.core.models import AgentContext, GuardrailResult, maybe_await

logger = logging.getLogger(__name__)

GuardrailCheck = Callable[[str, AgentContext], Union[GuardrailResult, Awaitable[GuardrailResult]]]


class GuardrailPhase(str, Enum):
    INPUT = "input"
    OUTPUT = "output"


@dataclass(frozen=True)
class Guardrail:
    """A named pass/fail check over input or output text."""

    name: str
    execute: GuardrailCheck


async def run_guardrails(
    guardrails: Sequence[Guardrail],
    text: str,
    context: AgentContext,
    *,
    phase: GuardrailPhase,
) -> None:
    """Run ``guardrails`` in order, raising on the first tripwire."""
    for guardrail in guardrails:
        result = await maybe_await(guardrail.execute(text, context))
        if result.tripped:
            logger.info("%s guardrail %s tripped: %s", phase.value, guardrail.name, result.info)
            raise GuardrailViolation(guardrail.name, result.info, phase=phase.value)
