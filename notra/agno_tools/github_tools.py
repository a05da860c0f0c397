"""
Agno tool functions for GitHub operations.

Simple functions that wrap the GitHub REST client for Agno. The tools are
bound to one organization and the repositories it may read; each call
resolves that organization's token for the repository off the event loop
before hitting the API.
"""

import asyncio
import logging
from typing import Callable, Optional, Sequence

from sqlalchemy.orm import Session

from notra.agno_tools.description import describe
from notra.config import get_github_fallback_token
from notra.tools.github import (
    get_pull_request,
    get_release_by_tag,
    get_commits_by_timeframe
)

logger = logging.getLogger(__name__)


class RepositoryNotAllowedError(Exception):
    """owner/repo is not one of the repositories the tools were bound to."""


def resolve_token(
    organization_id: str,
    owner: str,
    repo: str,
    session_factory: Optional[Callable[[], Session]] = None
) -> Optional[str]:
    """Token of the organization's enabled integration for owner/repo, else GITHUB_TOKEN (or None)."""
    from notra.db.integration_service import IntegrationService

    if session_factory is None:
        from notra.db.database import get_session
        session_factory = get_session

    db = session_factory()
    try:
        token = IntegrationService(db).get_token_for_repository(organization_id, owner, repo)
    finally:
        db.close()
    return token or get_github_fallback_token()


def create_github_tools(
    organization_id: str,
    repositories: Sequence,
    session_factory: Optional[Callable[[], Session]] = None
):
    """
    Create get_pull_requests / get_release_by_tag / get_commits_by_timeframe.

    Args:
        organization_id: Organization whose integration tokens may be used
        repositories: Objects with owner and repo; the only repositories the tools will read
        session_factory: Opens a session for token lookups (defaults to get_session)
    """
    allowed = {(r.owner.lower(), r.repo.lower()) for r in repositories}

    async def _token_for(owner: str, repo: str) -> Optional[str]:
        if (owner.lower(), repo.lower()) not in allowed:
            raise RepositoryNotAllowedError(f"Repository {owner}/{repo} is not available in this context")
        return await asyncio.to_thread(resolve_token, organization_id, owner, repo, session_factory)

    async def get_pull_requests(owner: str, repo: str, pull_number: int) -> dict:
        try:
            token = await _token_for(owner, repo)
            pull = await get_pull_request(owner, repo, pull_number, token=token)
            return {"success": True, "pull": pull}
        except RepositoryNotAllowedError as e:
            logger.warning(f"Rejected PR lookup for org {organization_id}: {e}")
            return {"success": False, "error": str(e)}
        except Exception as e:
            logger.error(f"Error getting PR {owner}/{repo}#{pull_number}: {e}", exc_info=True)
            return {"success": False, "error": str(e)}

    async def get_release_by_tag_tool(owner: str, repo: str, tag: str = "latest") -> dict:
        try:
            token = await _token_for(owner, repo)
            release = await get_release_by_tag(owner, repo, tag=tag, token=token)
            return {"success": True, "release": release}
        except RepositoryNotAllowedError as e:
            logger.warning(f"Rejected release lookup for org {organization_id}: {e}")
            return {"success": False, "error": str(e)}
        except Exception as e:
            logger.error(f"Error getting release {tag} for {owner}/{repo}: {e}", exc_info=True)
            return {"success": False, "error": str(e)}

    async def get_commits_by_timeframe_tool(owner: str, repo: str, days: int = 7) -> dict:
        try:
            token = await _token_for(owner, repo)
            commits = await get_commits_by_timeframe(owner, repo, days=days, token=token)
            return {"success": True, "count": len(commits), "commits": commits}
        except RepositoryNotAllowedError as e:
            logger.warning(f"Rejected commit lookup for org {organization_id}: {e}")
            return {"success": False, "error": str(e)}
        except Exception as e:
            logger.error(f"Error getting commits for {owner}/{repo}: {e}", exc_info=True)
            return {"success": False, "error": str(e)}

    describe(
        get_pull_requests,
        "get_pull_requests",
        intro="Gets the full details of a specific pull request from a GitHub repository including title, description, status, author, reviewers, and merge info.",
        when_to_use="When user asks about a specific PR, wants to see PR details, needs to check PR status, or references a pull request by number.",
        usage_notes="""
            Requires the repository owner, repo name, and PR number.
            Returns comprehensive PR data including diff stats, labels, and review state.
        """
    )
    describe(
        get_release_by_tag_tool,
        "get_release_by_tag",
        intro="Gets release details from a GitHub repository by tag name including release notes, assets, and publish date.",
        when_to_use="When user asks about a specific release version, wants changelog or release notes, or needs to find release assets and downloads.",
        usage_notes="""
            Use 'latest' as the tag if the user wants the most recent release and doesn't specify a version.
            Returns release body (changelog), assets list, author, and timestamps.
        """
    )
    describe(
        get_commits_by_timeframe_tool,
        "get_commits_by_timeframe",
        intro="Gets all commits from the default branch within a specified number of days. Returns commit messages, authors, dates, and SHAs.",
        when_to_use="When user asks about recent commits, wants to see what changed in the last week/month, or needs commit history for a time period.",
        usage_notes="""
            Defaults to 7 days if no timeframe specified.
            Use this for activity summaries, changelog generation, or understanding recent changes.
        """
    )

    return get_pull_requests, get_release_by_tag_tool, get_commits_by_timeframe_tool
