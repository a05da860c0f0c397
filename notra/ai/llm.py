"""
Agno agents backed by OpenRouter.

Every model call in notra goes through these helpers so the provider and
API key are configured in one place.
"""

import logging
from typing import Optional, Sequence, Type

from agno.agent import Agent
from agno.models.openrouter import OpenRouter
from pydantic import BaseModel

from notra.config import OPENROUTER_API_KEY

logger = logging.getLogger(__name__)


def create_model(model_id: str) -> OpenRouter:
    return OpenRouter(id=model_id, api_key=OPENROUTER_API_KEY)


def create_agent(
    model_id: str,
    instructions: str,
    tools: Optional[Sequence] = None,
    output_schema: Optional[Type[BaseModel]] = None,
    tool_call_limit: Optional[int] = None
) -> Agent:
    return Agent(
        model=create_model(model_id),
        instructions=instructions,
        tools=list(tools) if tools else None,
        output_schema=output_schema,
        tool_call_limit=tool_call_limit
    )


async def generate_structured(model_id: str, system: str, prompt: str, schema: Type[BaseModel]):
    """
    Run a one-shot structured completion.

    Returns:
        An instance of `schema`, or None when the model produced nothing usable
    """
    agent = create_agent(model_id, system, output_schema=schema)
    response = await agent.arun(prompt)
    content = getattr(response, "content", None)
    if isinstance(content, schema):
        return content
    if isinstance(content, dict):
        return schema.model_validate(content)
    logger.warning(f"{model_id} returned no structured output for {schema.__name__}")
    return None


async def generate_text(model_id: str, system: str, prompt: str) -> str:
    agent = create_agent(model_id, system)
    response = await agent.arun(prompt)
    content = getattr(response, "content", None)
    return content if isinstance(content, str) else ""
