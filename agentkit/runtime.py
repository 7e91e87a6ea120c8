"""Application runtime composition helpers."""
from __future__ import annotations

import logging
from functools import lru_cache

from agentkit.agents.orchestrator_agent import ORCHESTRATOR_AGENT, orchestrator_agent
from agentkit.cache.cached import CacheOptions
from agentkit.config import config
from agentkit.memory.provider import InMemoryProvider
from agentkit.orchestration.orchestrator import Orchestrator
from agentkit.services.engine import OpenAIReasoningEngine, ReasoningEngine
from agentkit.services.llm_pool import LLMPool

logger = logging.getLogger(__name__)


@lru_cache
def get_llm_pool() -> LLMPool:
    pool = LLMPool()

    if config.azure_openai:
        pool.register_azure_openai(config.default_model, config.azure_openai)
    elif config.openai:
        for model in config.models:
            pool.register_openai(model, config.openai)
    else:
        logger.warning("No OpenAI or Azure OpenAI credentials configured; model calls will fail")

    return pool


@lru_cache
def get_engine() -> ReasoningEngine:
    return OpenAIReasoningEngine(get_llm_pool())


@lru_cache
def get_memory_provider() -> InMemoryProvider:
    return InMemoryProvider()


@lru_cache
def get_orchestrator() -> Orchestrator:
    """Stock orchestrator agent plus its specialists, routed by ``match_on``."""
    router_agent = orchestrator_agent(
        get_engine(),
        cache_options=CacheOptions(ttl=config.cache.ttl_seconds, max_size=config.cache.max_size),
        model=config.default_model,
        max_turns=config.max_turns,
    )
    return Orchestrator([*router_agent.get_handoffs(), router_agent], default_agent=ORCHESTRATOR_AGENT)
