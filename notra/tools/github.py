import logging
from datetime import datetime, timedelta, timezone

import httpx
from pydantic import BaseModel
from fastapi import HTTPException

from notra.config import GITHUB_API_URL, GITHUB_API_VERSION

logger = logging.getLogger(__name__)


class GitHubPR(BaseModel):
    """Represents a GitHub Pull Request."""
    number: int
    title: str
    state: str  # open, closed
    draft: bool
    user: str
    body: str | None
    labels: list[str]
    created_at: str
    merged_at: str | None
    html_url: str


class GitHubRepo(BaseModel):
    """A GitHub repository."""
    name: str
    full_name: str
    description: str | None
    html_url: str
    default_branch: str
    private: bool


def _get_github_headers(token: str | None = None) -> dict:
    """GitHub API headers; anonymous when no token is available."""
    headers = {
        "Accept": "application/vnd.github+json",
        "X-GitHub-Api-Version": GITHUB_API_VERSION
    }
    if token:
        headers["Authorization"] = f"Bearer {token}"
    return headers


def get_iso_date_from_days_ago(days: int) -> str:
    date = datetime.now(timezone.utc) - timedelta(days=days)
    return date.isoformat().replace("+00:00", "Z")


async def _github_get(
    path: str,
    token: str | None,
    params: dict | None = None,
    not_found: str | None = None
):
    async with httpx.AsyncClient(timeout=30.0) as client:
        try:
            response = await client.get(
                f"{GITHUB_API_URL}{path}",
                headers=_get_github_headers(token),
                params=params
            )
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404 and not_found:
                raise HTTPException(status_code=404, detail=not_found)
            raise HTTPException(
                status_code=e.response.status_code,
                detail=f"GitHub API error: {e.response.text}"
            )
        except httpx.RequestError as e:
            raise HTTPException(status_code=503, detail=f"Failed to connect to GitHub: {str(e)}")

        return response.json()


async def get_repo(owner: str, repo: str, token: str | None = None) -> GitHubRepo:
    """Get repository information."""
    data = await _github_get(
        f"/repos/{owner}/{repo}",
        token,
        not_found=f"Repository {owner}/{repo} not found"
    )
    return GitHubRepo(
        name=data["name"],
        full_name=data["full_name"],
        description=data.get("description"),
        html_url=data["html_url"],
        default_branch=data["default_branch"],
        private=data.get("private", False)
    )


async def get_authenticated_user(token: str) -> dict:
    """Resolve the user behind a token; fails with 401 for a bad token."""
    return await _github_get("/user", token)


async def verify_repository_access(owner: str, repo: str, token: str | None = None) -> None:
    """
    Check that a new integration can actually read owner/repo.

    With a token the token itself is validated; without one the repository
    must be publicly readable.
    """
    try:
        if token:
            await get_authenticated_user(token)
        else:
            await get_repo(owner, repo)
    except HTTPException as e:
        if token:
            raise HTTPException(status_code=400, detail="Invalid GitHub token")
        raise HTTPException(
            status_code=400,
            detail="Unable to access repository. It may be private and require a Personal Access Token."
        ) from e


async def get_pull_request(owner: str, repo: str, pull_number: int, token: str | None = None) -> dict:
    """Full pull request payload as returned by GitHub."""
    return await _github_get(
        f"/repos/{owner}/{repo}/pulls/{pull_number}",
        token,
        not_found=f"PR #{pull_number} not found in {owner}/{repo}"
    )


async def get_release_by_tag(owner: str, repo: str, tag: str = "latest", token: str | None = None) -> dict:
    """Release details by tag; 'latest' resolves to the most recent published release."""
    path = (
        f"/repos/{owner}/{repo}/releases/latest"
        if tag == "latest"
        else f"/repos/{owner}/{repo}/releases/tags/{tag}"
    )
    return await _github_get(path, token, not_found=f"Release {tag} not found in {owner}/{repo}")


async def get_commits_by_timeframe(owner: str, repo: str, days: int = 7, token: str | None = None) -> list[dict]:
    """Commits on the default branch from the last `days` days."""
    return await _github_get(
        f"/repos/{owner}/{repo}/commits",
        token,
        params={"since": get_iso_date_from_days_ago(days), "per_page": 100},
        not_found=f"Repository {owner}/{repo} not found"
    )


async def get_merged_pull_requests(
    owner: str,
    repo: str,
    days: int = 7,
    token: str | None = None
) -> list[GitHubPR]:
    """Pull requests merged within the last `days` days, newest first."""

    prs = await _github_get(
        f"/repos/{owner}/{repo}/pulls",
        token,
        params={"state": "closed", "sort": "updated", "direction": "desc", "per_page": 100},
        not_found=f"Repository {owner}/{repo} not found"
    )

    cutoff = datetime.now(timezone.utc) - timedelta(days=days)
    merged = []
    for pr in prs:
        merged_at = pr.get("merged_at")
        if not merged_at:
            continue
        if datetime.fromisoformat(merged_at.replace("Z", "+00:00")) < cutoff:
            continue
        merged.append(GitHubPR(
            number=pr["number"],
            title=pr["title"],
            state=pr["state"],
            draft=pr.get("draft", False),
            user=pr["user"]["login"],
            body=pr.get("body"),
            labels=[label.get("name", "") for label in pr.get("labels", [])],
            created_at=pr["created_at"],
            merged_at=merged_at,
            html_url=pr["html_url"]
        ))
    return merged
