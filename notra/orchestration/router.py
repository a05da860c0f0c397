"""
Chat message router.

Classifies a message as simple or complex with a small model, then picks
the model tier that will answer it.
"""

import logging

from notra.ai.llm import generate_structured
from notra.orchestration.models import Complexity, RoutingDecision, RoutingResult
from notra.prompts.router import ROUTING_PROMPT, build_routing_input

logger = logging.getLogger(__name__)

MODELS = {
    "router": "openai/gpt-oss-120b",
    "simple": "openai/gpt-5.1",
    "complex": "anthropic/claude-sonnet-4.5",
}


class RoutingError(Exception):
    """Router model returned no usable decision."""


async def route_message(user_message: str, has_github_context: bool) -> RoutingDecision:
    decision = await generate_structured(
        MODELS["router"],
        ROUTING_PROMPT,
        build_routing_input(user_message, has_github_context),
        RoutingDecision
    )
    if decision is None:
        raise RoutingError("Router returned no decision")
    return decision


def select_model(decision: RoutingDecision) -> str:
    if decision.complexity == Complexity.COMPLEX:
        return MODELS["complex"]
    return MODELS["simple"]


async def route_and_select_model(user_message: str, has_github_context: bool) -> RoutingResult:
    decision = await route_message(user_message, has_github_context)
    return RoutingResult(
        model=select_model(decision),
        complexity=decision.complexity,
        requires_tools=decision.requires_tools,
        reasoning=decision.reasoning
    )
