"""FastAPI entry-point exposing agent chat and session controls."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI

from agentkit.api.chat import router as chat_router
from agentkit.api.routes import router as agents_router
from agentkit.api.sessions import router as sessions_router
from agentkit.config import config
from agentkit.logging_config import setup_logging
from agentkit.runtime import get_orchestrator

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifecycle manager for FastAPI application."""
    setup_logging()
    orchestrator = get_orchestrator()
    logger.info(
        "agentkit started (%s): agents=%s",
        config.environment,
        [agent.name for agent in orchestrator.list_agents()],
    )
    yield
    logger.info("agentkit stopped")


app = FastAPI(title="agentkit", lifespan=lifespan)
app.include_router(agents_router)
app.include_router(sessions_router)
app.include_router(chat_router)


@app.get("/health")
async def health() -> dict:
    return {"status": "ok", "environment": config.environment}


def serve() -> None:
    uvicorn.run("agentkit.main:app", host=config.host, port=config.port, log_config=None)
