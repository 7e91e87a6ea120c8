"""Lifecycle event delivery for agent turns."""
from __future__ import annotations

import logging
from typing import Awaitable, Callable, List, Optional, Union

from agentkit.core.models import AgentEvent, maybe_await

logger = logging.getLogger(__name__)

EventSink = Callable[[AgentEvent], Union[None, Awaitable[None]]]


async def emit_event(sink: Optional[EventSink], event: AgentEvent) -> None:
    """Deliver ``event`` to ``sink``.

    Sinks are observational: a failing sink is logged and never changes the
    outcome of the turn that emitted the event.
    """
    if sink is None:
        return
    try:
        await maybe_await(sink(event))
    except Exception:  # noqa: BLE001
        logger.warning("Event sink failed while handling %s", event.type, exc_info=True)


def fan_out(*sinks: Optional[EventSink]) -> EventSink:
    """Combine several sinks into one, delivering in order."""

    async def _sink(event: AgentEvent) -> None:
        for sink in sinks:
            await emit_event(sink, event)

    return _sink


class EventRecorder:
    """Sink that keeps every event of the turns it observes."""

    def __init__(self) -> None:
        self.events: List[AgentEvent] = []

    def __call__(self, event: AgentEvent) -> None:
        self.events.append(event)

    def types(self) -> List[str]:
        return [event.type for event in self.events]

    def of_type(self, event_type: str) -> List[AgentEvent]:
        return [event for event in self.events if event.type == event_type]

    def clear(self) -> None:
        self.events.clear()
