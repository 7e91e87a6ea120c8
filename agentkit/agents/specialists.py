"""Stock specialist agents: weather, news and math."""
from __future__ import annotations

import re
from typing import TYPE_CHECKING, Any, Dict, Optional, Tuple

from pydantic import BaseModel, Field

from agentkit.agents.agent import Agent
from agentkit.cache.cached import CacheOptions, ToolCache, cache_tools
from agentkit.core.models import AgentContext, ToolCallDetails
from agentkit.tools import arithmetic
from agentkit.tools.tool import Tool, tool

if TYPE_CHECKING:
    from agentkit.services.engine import ReasoningEngine

WEATHER_AGENT = "Weather Specialist"
NEWS_AGENT = "News Specialist"
MATH_AGENT = "Math Specialist"


class LocationParams(BaseModel):
    location: str = Field(..., description="City or region, e.g. 'Tokyo'")


class TopicParams(BaseModel):
    topic: str = Field(..., description="News topic to look up")


class ExpressionParams(BaseModel):
    expression: str = Field(..., description="Arithmetic expression, e.g. '15 * 24 + 100'")


@tool("get_weather", "Get current weather", LocationParams)
async def get_weather(params: LocationParams, context: AgentContext, details: Optional[ToolCallDetails]) -> str:
    return f"Weather in {params.location}: Sunny, 72°F"


@tool("get_forecast", "Get 5-day weather forecast", LocationParams)
async def get_forecast(params: LocationParams, context: AgentContext, details: Optional[ToolCallDetails]) -> str:
    return f"5-day forecast for {params.location}: Mostly sunny, temps 68-75°F"


@tool("get_news", "Get latest news", TopicParams)
async def get_news(params: TopicParams, context: AgentContext, details: Optional[ToolCallDetails]) -> str:
    return f"Latest news about {params.topic}: [Simulated news article]"


@tool("calculate", "Perform mathematical calculations", ExpressionParams)
def calculate(params: ExpressionParams, context: AgentContext, details: Optional[ToolCallDetails]) -> str:
    try:
        return f"Result: {arithmetic.evaluate(params.expression)}"
    except arithmetic.UnsafeExpression as exc:
        return f"Error: {exc}"


def weather_tools(cache_options: Optional[CacheOptions] = None) -> Tuple[Dict[str, Tool], Dict[str, ToolCache]]:
    """Weather tools wrapped with result caching."""
    return cache_tools({"get_weather": get_weather, "get_forecast": get_forecast}, cache_options)


def weather_agent(
    engine: ReasoningEngine,
    *,
    cache_options: Optional[CacheOptions] = None,
    **overrides: Any,
) -> Agent:
    tools, _ = weather_tools(cache_options)
    settings: Dict[str, Any] = dict(
        name=WEATHER_AGENT,
        instructions=(
            "You are a weather specialist. Provide detailed weather information.\n"
            "Use get_weather for current conditions and get_forecast for future predictions."
        ),
        handoff_description="Weather and climate queries",
        tools=tools,
        match_on=["weather", "forecast", "temperature", re.compile(r"climate", re.IGNORECASE)],
    )
    settings.update(overrides)
    return Agent(engine=engine, **settings)


def news_agent(engine: ReasoningEngine, **overrides: Any) -> Agent:
    settings: Dict[str, Any] = dict(
        name=NEWS_AGENT,
        instructions="You are a news specialist. Provide current news and information.",
        handoff_description="News and current events",
        tools=[get_news],
        match_on=["news", "article", "headline"],
    )
    settings.update(overrides)
    return Agent(engine=engine, **settings)


def math_agent(engine: ReasoningEngine, **overrides: Any) -> Agent:
    settings: Dict[str, Any] = dict(
        name=MATH_AGENT,
        instructions="You are a math specialist. Solve mathematical problems and calculations.",
        handoff_description="Mathematical calculations",
        tools=[calculate],
        match_on=["calculate", "math", re.compile(r"\d+\s*[+\-*/]\s*\d+")],
    )
    settings.update(overrides)
    return Agent(engine=engine, **settings)
