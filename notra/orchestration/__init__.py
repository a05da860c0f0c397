"""
Chat orchestration for the content editor.

Validates the integrations a chat references, routes the message to a model
tier, builds the tool set and streams a single tool-augmented agent run back
as newline-delimited JSON events.
"""

import logging
from typing import Any, AsyncIterator, List, Optional, Sequence

from agno.models.message import Message
from pydantic import BaseModel, ConfigDict
from sqlalchemy.orm import Session

from notra.ai.llm import create_agent
from notra.ai.memory import with_memory
from notra.orchestration.integration_validator import (
    has_enabled_github_integration,
    validate_integrations,
    get_repo_contexts
)
from notra.orchestration.models import (
    ChatMessage, ContextItem, RoutingResult, StreamEvent, TextSelection
)
from notra.orchestration.router import MODELS, route_and_select_model, route_message, select_model
from notra.orchestration.tool_registry import build_tool_set, get_repo_context_from_integrations
from notra.prompts.content_editor import get_content_editor_chat_prompt

logger = logging.getLogger(__name__)

__all__ = [
    "MODELS",
    "OrchestrateResult",
    "orchestrate_chat",
    "get_last_user_message",
    "route_message",
    "select_model",
    "route_and_select_model",
    "validate_integrations",
    "has_enabled_github_integration",
    "get_repo_contexts",
    "build_tool_set",
    "get_repo_context_from_integrations",
]


class OrchestrateResult(BaseModel):
    """Stream of NDJSON lines plus the routing decision that produced it."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    stream: Any
    routing_decision: RoutingResult


def get_last_user_message(messages: Sequence[ChatMessage]) -> str:
    """First text part of the most recent user message ("" when there is none)."""
    for message in reversed(messages):
        if message.role != "user":
            continue
        for part in message.parts:
            if part.type == "text":
                return part.text or ""
        if message.content:
            return message.content
    return ""


def to_agent_messages(messages: Sequence[ChatMessage]) -> List[Message]:
    converted = []
    for message in messages:
        text = message.text()
        if message.role == "system" or not text:
            continue
        converted.append(Message(role=message.role, content=text))
    return converted


async def _stream_run(
    agent,
    messages: List[Message],
    routing: RoutingResult,
    markdown_updates: List[str],
    organization_id: str
) -> AsyncIterator[str]:
    yield StreamEvent(type="routing", data=routing.model_dump(mode="json")).to_line()

    try:
        async for event in agent.arun(input=messages, stream=True):
            content = getattr(event, "content", None)
            if getattr(event, "event", None) == "RunContent" and isinstance(content, str) and content:
                yield StreamEvent(type="text-delta", data={"delta": content}).to_line()
            while markdown_updates:
                yield StreamEvent(type="markdown", data={"markdown": markdown_updates.pop(0)}).to_line()
    except Exception as e:
        logger.error(
            f"Chat stream error (org={organization_id}, model={routing.model}): {e}",
            exc_info=True
        )
        yield StreamEvent(type="error", data={"error": str(e)}).to_line()

    while markdown_updates:
        yield StreamEvent(type="markdown", data={"markdown": markdown_updates.pop(0)}).to_line()

    yield StreamEvent(type="finish").to_line()


async def orchestrate_chat(
    db: Session,
    organization_id: str,
    messages: Sequence[ChatMessage],
    current_markdown: str,
    selection: Optional[TextSelection] = None,
    context: Optional[List[ContextItem]] = None,
    max_steps: int = 1
) -> OrchestrateResult:
    """
    Prepare a chat turn and return its event stream.

    Routing happens before this returns, so routing failures propagate to the
    caller; failures during the run itself surface as an "error" event.
    """
    validated = validate_integrations(db, organization_id, context or [])
    has_github = has_enabled_github_integration(validated)

    last_user_message = get_last_user_message(messages)
    routing = await route_and_select_model(last_user_message, has_github)

    logger.info(
        f"Chat routing: model={routing.model} complexity={routing.complexity.value} "
        f"requires_tools={routing.requires_tools} has_github={has_github} reasoning={routing.reasoning}"
    )

    markdown_updates: List[str] = []
    tool_set = build_tool_set(
        organization_id, current_markdown, validated, on_markdown_update=markdown_updates.append
    )

    repo_context = get_repo_context_from_integrations(validated)
    system_prompt = get_content_editor_chat_prompt(
        selected_text=selection.text if selection else None,
        repo_context=repo_context,
        tool_descriptions=tool_set.descriptions,
        has_github_enabled=has_github
    )
    system_prompt = await with_memory(system_prompt, organization_id, last_user_message)

    agent = create_agent(
        routing.model,
        system_prompt,
        tools=list(tool_set.tools.values()),
        tool_call_limit=max_steps
    )

    stream = _stream_run(agent, to_agent_messages(messages), routing, markdown_updates, organization_id)
    return OrchestrateResult(stream=stream, routing_decision=routing)
