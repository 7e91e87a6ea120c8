"""Sliding-window rate limiting as an input guardrail."""
from __future__ import annotations

import time
from typing import Callable, Dict, List, Optional

from agentkit.core.models import AgentContext, GuardrailResult
from agentkit.guardrails.base import Guardrail


class RateLimiter:
    """Counts requests per identifier inside a sliding time window."""

    def __init__(
        self,
        max_requests: int,
        window_seconds: float,
        *,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if max_requests < 1:
            raise ValueError("max_requests must be at least 1")
        self.max_requests = max_requests
        self.window_seconds = window_seconds
        self._clock = clock
        self._requests: Dict[str, List[float]] = {}

    def _recent(self, identifier: str, now: float) -> List[float]:
        return [ts for ts in self._requests.get(identifier, []) if now - ts < self.window_seconds]

    def is_allowed(self, identifier: str) -> bool:
        """Record a request and report whether it fits in the window."""
        now = self._clock()
        recent = self._recent(identifier, now)
        if len(recent) >= self.max_requests:
            self._requests[identifier] = recent
            return False
        recent.append(now)
        self._requests[identifier] = recent
        return True

    def get_remaining(self, identifier: str) -> int:
        return max(0, self.max_requests - len(self._recent(identifier, self._clock())))

    def clear(self) -> None:
        self._requests.clear()


def rate_limiter(
    max_requests: int,
    window_seconds: float,
    *,
    get_identifier: Optional[Callable[[AgentContext], str]] = None,
    limiter: Optional[RateLimiter] = None,
) -> Guardrail:
    active = limiter or RateLimiter(max_requests, window_seconds)
    identify = get_identifier or (lambda context: "default")

    async def _check(text: str, context: AgentContext) -> GuardrailResult:
        identifier = identify(context)
        if not active.is_allowed(identifier):
            return GuardrailResult(
                True,
                {
                    "reason": "Rate limit exceeded",
                    "identifier": identifier,
                    "remaining": active.get_remaining(identifier),
                },
            )
        return GuardrailResult(False)

    return Guardrail(name="rate-limiter", execute=_check)
