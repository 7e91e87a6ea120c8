"""LLM client pool for shared model access with concurrency control."""
from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List

from openai import AsyncAzureOpenAI, AsyncOpenAI

from agentkit.config import AzureOpenAIConfig, OpenAIConfig

logger = logging.getLogger(__name__)


class LLMPool:
    """Manages shared LLM clients with concurrency limiting."""

    def __init__(self) -> None:
        self._clients: Dict[str, Any] = {}
        self._semaphores: Dict[str, asyncio.Semaphore] = {}
        self._initialized: Dict[str, bool] = {}
        self._model_ids: Dict[str, str] = {}

    def register_openai(self, name: str, config: OpenAIConfig) -> None:
        """Register an OpenAI model configuration."""
        self._register(name, config, config.max_concurrent, model_id=name)

    def register_azure_openai(self, name: str, config: AzureOpenAIConfig) -> None:
        """Register an Azure OpenAI model configuration."""
        self._register(name, config, config.max_concurrent, model_id=config.deployment_name)

    def register_client(self, name: str, client: Any, max_concurrent: int = 50) -> None:
        """Register an already constructed client (any ``chat.completions`` shape)."""
        self._register(name, client, max_concurrent, model_id=name)
        self._initialized[name] = True

    def _register(self, name: str, config: Any, max_concurrent: int, *, model_id: str) -> None:
        self._clients[name] = config
        self._semaphores[name] = asyncio.Semaphore(max_concurrent)
        self._initialized[name] = False
        self._model_ids[name] = model_id

    def models(self) -> List[str]:
        return list(self._clients)

    def model_id(self, model_name: str) -> str:
        """Identifier sent to the provider (the deployment name on Azure)."""
        return self._model_ids.get(model_name, model_name)

    def __contains__(self, model_name: str) -> bool:
        return model_name in self._clients

    @asynccontextmanager
    async def acquire(self, model_name: str) -> AsyncIterator[Any]:
        """Acquire access to a model client with concurrency control."""
        if model_name not in self._clients:
            raise KeyError(f"Model '{model_name}' not registered in LLM pool")

        semaphore = self._semaphores[model_name]
        await semaphore.acquire()

        try:
            # Lazy initialization on first use
            if not self._initialized[model_name]:
                self._initialize_client(model_name)

            yield self._clients[model_name]
        finally:
            semaphore.release()

    def _initialize_client(self, model_name: str) -> None:
        config = self._clients[model_name]

        if isinstance(config, AzureOpenAIConfig):
            client: Any = AsyncAzureOpenAI(
                api_key=config.api_key,
                api_version=config.api_version,
                azure_endpoint=config.endpoint,
            )
        elif isinstance(config, OpenAIConfig):
            client = AsyncOpenAI(
                api_key=config.api_key,
                base_url=config.base_url,
                organization=config.organization,
            )
        else:
            client = config
        logger.debug("Initialized client for model %s", model_name)
        self._clients[model_name] = client
        self._initialized[model_name] = True
