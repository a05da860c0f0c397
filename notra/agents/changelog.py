"""
Changelog agent.

A tool-using agent drafts the changelog from repository data; a second,
cheaper model then pulls the title and body out of the draft as structured
output.
"""

import logging
from typing import AsyncIterator, List, Optional

from pydantic import BaseModel, Field

from notra.agno_tools.github_tools import create_github_tools
from notra.agno_tools.skill_tools import create_skill_tools
from notra.ai.llm import create_agent, generate_structured
from notra.ai.memory import with_memory
from notra.orchestration.models import RepoContext
from notra.prompts.changelog import TONE_CONFIGS, get_valid_tone_profile

logger = logging.getLogger(__name__)

DRAFT_MODEL = "moonshotai/kimi-k2.5"
EXTRACTION_MODEL = "google/gemini-2.0-flash-001"
MAX_TOOL_CALLS = 30


class ChangelogGenerationError(Exception):
    """The agents produced no usable changelog."""


class ChangelogOutput(BaseModel):
    title: str = Field(max_length=120, description="The changelog title, no markdown")
    markdown: str = Field(
        description=(
            "The full changelog content body as markdown/MDX, without the title heading "
            "(title is a separate field)"
        )
    )


class ChangelogOptions(BaseModel):
    organization_id: str
    tone: Optional[str] = "Conversational"
    company_name: Optional[str] = None
    company_description: Optional[str] = None
    audience: Optional[str] = None
    custom_instructions: Optional[str] = None
    repositories: List[RepoContext] = Field(default_factory=list)


def build_changelog_instructions(options: ChangelogOptions) -> str:
    tone_config = TONE_CONFIGS[get_valid_tone_profile(options.tone, "Conversational")]

    company_context = ""
    if options.company_name:
        company_context = f"\nCompany: {options.company_name}"
        if options.company_description:
            company_context += f" - {options.company_description}"

    audience_context = f"\nTarget Audience: {options.audience}" if options.audience else ""
    repositories = ", ".join(f"{r.owner}/{r.repo}" for r in options.repositories) or "none"
    custom_context = (
        f"\n\nAdditional Instructions:\n{options.custom_instructions}"
        if options.custom_instructions else ""
    )
    guidelines = "\n".join(f"- {g}" for g in tone_config.language_guidelines)

    return f"""# ROLE AND IDENTITY

{tone_config.role_identity}

# AUDIENCE

{tone_config.audience_guidance}{company_context}{audience_context}

# TONE AND STYLE GUIDELINES

Summary Style: {tone_config.summary_style}

PR Description Style: {tone_config.pr_description_style}

Language Guidelines:
{guidelines}

# TASK OBJECTIVE

You are a helpful devrel with a passion for turning technical information into easy to follow changelogs. Your job is to take information from GitHub repositories and turn that information into a changelog designed for humans to read.{company_context}

# OUTPUT REQUIREMENTS

- Generate a comprehensive, well-organized changelog
- Process ALL pull requests from the provided data
- Categorize them logically into: Features, Bug Fixes, Performance, Documentation, Internal, Testing, Infrastructure, Security
- Present them in a developer-friendly format using MDX
- Title must be 120 characters or less
- Summary must be 600-800 words
- Do not use emojis in section headings
- Keep PR descriptions concise but informative
- Output ONLY the final markdown changelog, no reasoning or commentary

# AVAILABLE TOOLS

You have access to skills that can help improve your work. Use list_available_skills to see available skills, and get_skill_by_name to use a specific skill when needed. Always consider using the humanizer skill if the draft changelog reads overly robotic, stiff, or generic, and use it to humanize the final text while preserving technical accuracy and the selected tone.

You also have access to GitHub tools:
- get_pull_requests: Fetch detailed PR information
- get_release_by_tag: Get release details
- get_commits_by_timeframe: Retrieve commits from a timeframe

The GitHub tools can only read these repositories: {repositories}
{custom_context}
"""


async def _create_changelog_agent(options: ChangelogOptions, prompt: str):
    instructions = await with_memory(
        build_changelog_instructions(options),
        options.organization_id,
        prompt
    )
    return create_agent(
        DRAFT_MODEL,
        instructions,
        tools=[
            *create_github_tools(options.organization_id, options.repositories),
            *create_skill_tools()
        ],
        tool_call_limit=MAX_TOOL_CALLS
    )


async def generate_changelog(options: ChangelogOptions, prompt: str) -> ChangelogOutput:
    """
    Draft a changelog and return its title and body.

    Raises:
        ChangelogGenerationError: when either pass produces nothing
    """
    agent = await _create_changelog_agent(options, prompt)
    response = await agent.arun(prompt)
    draft = getattr(response, "content", None)

    if not isinstance(draft, str) or not draft.strip():
        raise ChangelogGenerationError("Changelog agent returned an empty draft")

    logger.info(f"Changelog draft ready for org {options.organization_id} ({len(draft)} chars)")

    output = await generate_structured(
        EXTRACTION_MODEL,
        "You extract structured fields from changelog documents.",
        (
            "Extract the title and markdown body from the following changelog text. The title should be "
            "plain text (no markdown formatting, max 120 characters). The markdown should be the full "
            f"changelog body without the title heading.\n\n{draft}"
        ),
        ChangelogOutput
    )

    if output is None:
        raise ChangelogGenerationError("Failed to extract structured output from changelog")

    return output


async def stream_changelog(options: ChangelogOptions, prompt: str) -> AsyncIterator[str]:
    """Yield draft text chunks as the agent produces them."""
    agent = await _create_changelog_agent(options, prompt)
    async for event in agent.arun(prompt, stream=True):
        content = getattr(event, "content", None)
        if getattr(event, "event", None) == "RunContent" and isinstance(content, str) and content:
            yield content
