"""
PII detection guardrails.

Blocks text containing:
- Social Security Numbers
- Email addresses
- Phone numbers
- Credit card numbers
- IP addresses
"""
from __future__ import annotations

import re
from enum import Enum
from typing import Dict, List, Optional, Pattern, Sequence

from agentkit.core.models import AgentContext, GuardrailResult
from agentkit.guardrails.base import Guardrail


class PIIType(str, Enum):
    SSN = "ssn"
    EMAIL = "email"
    PHONE = "phone"
    CREDIT_CARD = "credit_card"
    IP_ADDRESS = "ip_address"


PII_PATTERNS: Dict[PIIType, Pattern[str]] = {
    PIIType.SSN: re.compile(r"\b\d{3}-\d{2}-\d{4}\b"),
    PIIType.EMAIL: re.compile(r"\b[A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,}\b"),
    PIIType.PHONE: re.compile(r"\b\d{3}[-.]?\d{3}[-.]?\d{4}\b"),
    PIIType.CREDIT_CARD: re.compile(r"\b\d{4}[- ]?\d{4}[- ]?\d{4}[- ]?\d{4}\b"),
    PIIType.IP_ADDRESS: re.compile(r"\b(?:\d{1,3}\.){3}\d{1,3}\b"),
}


def detect_pii(text: str, types: Sequence[PIIType]) -> List[PIIType]:
    return [pii_type for pii_type in types if PII_PATTERNS[pii_type].search(text)]


def pii_detector_input(types: Optional[Sequence[PIIType]] = None) -> Guardrail:
    checked = tuple(types or PIIType)

    async def _check(text: str, context: AgentContext) -> GuardrailResult:
        found = detect_pii(text, checked)
        if found:
            return GuardrailResult(True, {"reason": "PII detected in input", "types": [t.value for t in found]})
        return GuardrailResult(False)

    return Guardrail(name="pii-detector-input", execute=_check)


def pii_detector_output(types: Optional[Sequence[PIIType]] = None) -> Guardrail:
    checked = tuple(types or PIIType)

    async def _check(text: str, context: AgentContext) -> GuardrailResult:
        found = detect_pii(str(text), checked)
        if found:
            return GuardrailResult(True, {"reason": "PII detected in response", "types": [t.value for t in found]})
        return GuardrailResult(False)

    return Guardrail(name="pii-detector-output", execute=_check)
