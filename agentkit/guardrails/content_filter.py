"""Banned-word filtering for prompts and responses."""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Optional, Sequence

from agentkit.core.models import AgentContext, GuardrailResult
from agentkit.guardrails.base import Guardrail

PROFANITY_LIST = ("damn", "hell", "crap")


@dataclass(frozen=True)
class ContentFilterOptions:
    banned_words: Sequence[str] = PROFANITY_LIST
    case_sensitive: bool = False
    allow_partial_matches: bool = True


def find_banned_word(text: str, options: ContentFilterOptions) -> Optional[str]:
    """Return the first banned word present in ``text``."""
    haystack = text if options.case_sensitive else text.lower()
    for word in options.banned_words:
        needle = word if options.case_sensitive else word.lower()
        if options.allow_partial_matches:
            found = needle in haystack
        else:
            found = re.search(rf"\b{re.escape(needle)}\b", haystack) is not None
        if found:
            return needle
    return None


def content_filter_input(options: Optional[ContentFilterOptions] = None) -> Guardrail:
    opts = options or ContentFilterOptions()

    async def _check(text: str, context: AgentContext) -> GuardrailResult:
        word = find_banned_word(text, opts)
        if word is not None:
            return GuardrailResult(True, {"reason": "Inappropriate content detected", "word": word})
        return GuardrailResult(False)

    return Guardrail(name="content-filter-input", execute=_check)


def content_filter_output(options: Optional[ContentFilterOptions] = None) -> Guardrail:
    opts = options or ContentFilterOptions()

    async def _check(text: str, context: AgentContext) -> GuardrailResult:
        word = find_banned_word(str(text), opts)
        if word is not None:
            return GuardrailResult(True, {"reason": "Inappropriate content in response", "word": word})
        return GuardrailResult(False)

    return Guardrail(name="content-filter-output", execute=_check)
