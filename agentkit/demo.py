"""CLI demonstration of handoffs between the orchestrator and its specialists."""
from __future__ import annotations

import asyncio
import sys
from typing import List, NoReturn, Optional, Sequence

from agentkit.agents.orchestrator_agent import orchestrator_agent
from agentkit.config import config
from agentkit.core.errors import AgentError
from agentkit.core.events import EventRecorder, fan_out
from agentkit.core.models import AgentEvent
from agentkit.logging_config import setup_logging
from agentkit.runtime import get_engine, get_llm_pool

DEFAULT_QUERIES = [
    "What is the weather in San Francisco?",
    "Calculate 15 * 24 + 100",
    "What are the latest tech news?",
    "Give me a 5-day forecast for New York",
]


def print_event(event: AgentEvent) -> None:
    if event.type == "agent-start":
        print(f"\n>> {event.agent} - round {event.round}")
    elif event.type == "agent-handoff":
        print(f"\n-> Handoff: {event.from_agent} -> {event.to_agent}")
        if event.reason:
            print(f"   Reason: {event.reason}")
    elif event.type == "tool-start":
        print(f"   [{event.agent}] {event.tool_name}({event.args})")


async def main(queries: Sequence[str]) -> int:
    if not get_llm_pool().models():
        print("Set OPENAI_API_KEY or AZURE_OPENAI_KEY/AZURE_OPENAI_ENDPOINT to run the demo.", file=sys.stderr)
        return 1

    recorder = EventRecorder()
    agent = orchestrator_agent(get_engine(), model=config.default_model, on_event=fan_out(print_event, recorder))
    failures = 0
    for query in queries:
        recorder.clear()
        print("\n" + "=" * 60)
        print(f'Query: "{query}"')
        print("=" * 60)
        try:
            result = await agent.generate(query)
        except AgentError as exc:
            failures += 1
            print(f"\nFailed: {exc}", file=sys.stderr)
            continue
        print(f"\nFinal response ({result.agent}):\n{result.text}")
        print(f"\nDuration: {result.metadata.duration_ms:.0f}ms, tokens: {result.usage.total_tokens}")
        print(f"Handoffs: {len(recorder.of_type('agent-handoff'))}, tool calls: {len(recorder.of_type('tool-start'))}")

    print("\n" + "=" * 60)
    print("All queries completed!")
    return 1 if failures else 0


def run(argv: Optional[List[str]] = None) -> NoReturn:
    setup_logging()
    queries = sys.argv[1:] if argv is None else argv
    sys.exit(asyncio.run(main(queries or DEFAULT_QUERIES)))


if __name__ == "__main__":
    run()
