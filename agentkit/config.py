"""Configuration management for agentkit."""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional, Tuple


@dataclass(frozen=True)
class OpenAIConfig:
    """OpenAI (or OpenAI-compatible) service configuration."""

    api_key: str
    base_url: Optional[str] = None
    organization: Optional[str] = None
    max_concurrent: int = 50


@dataclass(frozen=True)
class AzureOpenAIConfig:
    """Azure OpenAI service configuration."""

    api_key: str
    endpoint: str
    api_version: str = "2024-02-15-preview"
    deployment_name: str = "gpt-4o-mini"
    max_concurrent: int = 50


@dataclass(frozen=True)
class CacheConfig:
    ttl_seconds: float = 300.0
    max_size: int = 1000


@dataclass(frozen=True)
class Config:
    """Application configuration loaded from environment variables."""

    openai: Optional[OpenAIConfig] = None
    azure_openai: Optional[AzureOpenAIConfig] = None
    default_model: str = "gpt-4o-mini"
    models: Tuple[str, ...] = ("gpt-4o-mini",)
    max_turns: int = 10
    history_limit: int = 20
    cache: CacheConfig = CacheConfig()
    log_level: str = "INFO"
    log_format: str = "text"
    environment: str = "development"
    host: str = "127.0.0.1"
    port: int = 8000

    @classmethod
    def from_env(cls) -> Config:
        """Load configuration from environment variables."""
        openai_key = os.getenv("OPENAI_API_KEY")
        openai_config = None
        if openai_key:
            openai_config = OpenAIConfig(
                api_key=openai_key,
                base_url=os.getenv("OPENAI_BASE_URL") or None,
                organization=os.getenv("OPENAI_ORG_ID") or None,
                max_concurrent=int(os.getenv("OPENAI_MAX_CONCURRENT", "50")),
            )

        azure_key = os.getenv("AZURE_OPENAI_KEY")
        azure_endpoint = os.getenv("AZURE_OPENAI_ENDPOINT")
        azure_config = None
        if azure_key and azure_endpoint:
            azure_config = AzureOpenAIConfig(
                api_key=azure_key,
                endpoint=azure_endpoint,
                api_version=os.getenv("AZURE_OPENAI_API_VERSION", "2024-02-15-preview"),
                deployment_name=os.getenv("AZURE_OPENAI_DEPLOYMENT", "gpt-4o-mini"),
                max_concurrent=int(os.getenv("AZURE_OPENAI_MAX_CONCURRENT", "50")),
            )

        default_model = os.getenv("AGENTKIT_MODEL", "gpt-4o-mini")
        extra_models = [m.strip() for m in os.getenv("AGENTKIT_MODELS", "").split(",") if m.strip()]
        models = tuple(dict.fromkeys([default_model, *extra_models]))

        return cls(
            openai=openai_config,
            azure_openai=azure_config,
            default_model=default_model,
            models=models,
            max_turns=int(os.getenv("AGENTKIT_MAX_TURNS", "10")),
            history_limit=int(os.getenv("AGENTKIT_HISTORY_LIMIT", "20")),
            cache=CacheConfig(
                ttl_seconds=float(os.getenv("AGENTKIT_CACHE_TTL", "300")),
                max_size=int(os.getenv("AGENTKIT_CACHE_MAX_SIZE", "1000")),
            ),
            log_level=os.getenv("LOG_LEVEL", "INFO"),
            log_format=os.getenv("LOG_FORMAT", "text"),
            environment=os.getenv("ENVIRONMENT", "development"),
            host=os.getenv("AGENTKIT_HOST", "127.0.0.1"),
            port=int(os.getenv("AGENTKIT_PORT", "8000")),
        )


# Global config instance
config = Config.from_env()
