"""Assembles the tools a chat turn may call."""

from typing import Callable, List, Optional

from sqlalchemy.orm import Session

from notra.agno_tools.github_tools import create_github_tools
from notra.agno_tools.markdown_tools import create_markdown_tools
from notra.agno_tools.skill_tools import create_skill_tools
from notra.orchestration.models import RepoContext, ToolSet, ValidatedIntegration


def build_tool_set(
    organization_id: str,
    current_markdown: str,
    validated_integrations: List[ValidatedIntegration],
    on_markdown_update: Optional[Callable[[str], None]] = None,
    session_factory: Optional[Callable[[], Session]] = None
) -> ToolSet:
    get_markdown, edit_markdown = create_markdown_tools(
        current_markdown,
        on_markdown_update or (lambda markdown: None)
    )
    list_available_skills, get_skill_by_name = create_skill_tools()

    tools = {
        "get_markdown": get_markdown,
        "edit_markdown": edit_markdown,
        "list_available_skills": list_available_skills,
        "get_skill_by_name": get_skill_by_name,
    }
    descriptions = [
        "**Markdown Editing**: View and edit the document using get_markdown and edit_markdown",
        "**Skills**: Access knowledge and writing guidelines using list_available_skills and get_skill_by_name",
    ]

    # GitHub tools only read the repositories validated for this chat
    repo_context = get_repo_context_from_integrations(validated_integrations)
    if repo_context:
        get_pull_requests, get_release_by_tag, get_commits_by_timeframe = create_github_tools(
            organization_id, repo_context, session_factory
        )
        tools["get_pull_requests"] = get_pull_requests
        tools["get_release_by_tag"] = get_release_by_tag
        tools["get_commits_by_timeframe"] = get_commits_by_timeframe

        repos = ", ".join(f"{c.owner}/{c.repo}" for c in repo_context)
        descriptions.append(f"**GitHub Integration**: Fetch PRs, releases, and commits from: {repos}")

    return ToolSet(tools=tools, descriptions=descriptions)


def get_repo_context_from_integrations(integrations: List[ValidatedIntegration]) -> List[RepoContext]:
    return [
        RepoContext(owner=r.owner, repo=r.repo)
        for i in integrations
        if i.type == "github"
        for r in i.repositories
    ]
