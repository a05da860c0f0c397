"""
Content edit agent.

Applies one instruction to a markdown document in a single, non-streamed run
and hands back the edited markdown.
"""

import logging
from typing import Callable, Optional

from notra.agno_tools.markdown_tools import create_markdown_tools
from notra.agno_tools.skill_tools import create_skill_tools
from notra.ai.llm import create_agent
from notra.ai.memory import with_memory
from notra.prompts.content_editor import get_content_editor_chat_prompt

logger = logging.getLogger(__name__)

EDIT_MODEL = "anthropic/claude-sonnet-4.5"
MAX_TOOL_CALLS = 15

TOOL_DESCRIPTIONS = [
    "**Markdown Editing**: View and edit the document using get_markdown and edit_markdown",
    "**Skills**: Access knowledge and writing guidelines using list_available_skills and get_skill_by_name",
]


def build_brand_context(brand) -> Optional[str]:
    if not brand:
        return None
    return (
        f"Company: {brand.company_name or ''}\n"
        f"Description: {brand.company_description or ''}\n"
        f"Audience: {brand.audience or ''}\n"
        f"Tone: {brand.tone_profile or ''}\n"
        f"Custom instructions: {brand.custom_instructions or ''}"
    )


async def create_chat_agent(
    organization_id: str,
    current_markdown: str,
    on_markdown_update: Callable[[str], None],
    instruction: str,
    selected_text: Optional[str] = None,
    brand_context: Optional[str] = None
):
    get_markdown, edit_markdown = create_markdown_tools(current_markdown, on_markdown_update)
    list_available_skills, get_skill_by_name = create_skill_tools()

    instructions = get_content_editor_chat_prompt(
        selected_text=selected_text,
        tool_descriptions=TOOL_DESCRIPTIONS
    )
    if brand_context:
        instructions += f"\n\n## Brand\n{brand_context}"
    instructions = await with_memory(instructions, organization_id, instruction)

    return create_agent(
        EDIT_MODEL,
        instructions,
        tools=[get_markdown, edit_markdown, list_available_skills, get_skill_by_name],
        tool_call_limit=MAX_TOOL_CALLS
    )


async def edit_content(
    organization_id: str,
    instruction: str,
    current_markdown: str,
    selected_text: Optional[str] = None,
    brand=None
) -> str:
    """Run the edit agent once; returns the document after its edits (unchanged if it made none)."""
    updates = []
    agent = await create_chat_agent(
        organization_id,
        current_markdown,
        updates.append,
        instruction,
        selected_text=selected_text,
        brand_context=build_brand_context(brand)
    )
    await agent.arun(instruction)

    logger.info(f"Content edit for org {organization_id} applied {len(updates)} update(s)")
    return updates[-1] if updates else current_markdown
