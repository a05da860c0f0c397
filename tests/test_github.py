"""Tests for the GitHub REST client and the agent tools wrapping it."""

import asyncio
from datetime import datetime, timedelta, timezone

import httpx
import pytest
from fastapi import HTTPException

from notra.agno_tools.github_tools import create_github_tools, resolve_token
from notra.db.integration_service import IntegrationService
from notra.orchestration.models import RepoContext
from notra.tools.github import (
    get_commits_by_timeframe, get_merged_pull_requests, get_release_by_tag, verify_repository_access
)
from tests.conftest import make_integration


@pytest.fixture()
def github(monkeypatch):
    """Route the client's httpx calls to a handler; returns the list of seen requests."""
    real_client = httpx.AsyncClient
    state = {"handler": None, "requests": []}

    def handler(request):
        state["requests"].append(request)
        return state["handler"](request)

    def client(**kwargs):
        return real_client(transport=httpx.MockTransport(handler), **kwargs)

    monkeypatch.setattr("notra.tools.github.httpx.AsyncClient", client)

    def respond(func):
        state["handler"] = func
        return state["requests"]

    return respond


def _iso(dt):
    return dt.isoformat().replace("+00:00", "Z")


def _pr(number, merged_at):
    return {
        "number": number,
        "title": f"PR {number}",
        "state": "closed",
        "draft": False,
        "user": {"login": "sam"},
        "body": None,
        "labels": [{"name": "bug"}],
        "created_at": "2026-01-01T00:00:00Z",
        "merged_at": merged_at,
        "html_url": f"https://github.com/acme/widgets/pull/{number}",
    }


class TestGitHubClient:

    @pytest.mark.asyncio
    async def test_latest_release_endpoint(self, github):
        requests = github(lambda r: httpx.Response(200, json={"tag_name": "v2"}))
        release = await get_release_by_tag("acme", "widgets", token="ghp_x")

        assert release == {"tag_name": "v2"}
        assert requests[0].url.path == "/repos/acme/widgets/releases/latest"
        assert requests[0].headers["authorization"] == "Bearer ghp_x"
        assert requests[0].headers["x-github-api-version"] == "2022-11-28"

    @pytest.mark.asyncio
    async def test_release_by_tag_is_anonymous_without_token(self, github):
        requests = github(lambda r: httpx.Response(200, json={"tag_name": "v1"}))
        await get_release_by_tag("acme", "widgets", tag="v1")

        assert requests[0].url.path == "/repos/acme/widgets/releases/tags/v1"
        assert "authorization" not in requests[0].headers

    @pytest.mark.asyncio
    async def test_missing_release_is_404(self, github):
        github(lambda r: httpx.Response(404, json={"message": "Not Found"}))
        with pytest.raises(HTTPException) as exc:
            await get_release_by_tag("acme", "widgets", tag="v9")
        assert exc.value.status_code == 404
        assert exc.value.detail == "Release v9 not found in acme/widgets"

    @pytest.mark.asyncio
    async def test_upstream_error_status_is_kept(self, github):
        github(lambda r: httpx.Response(502, text="bad gateway"))
        with pytest.raises(HTTPException) as exc:
            await get_commits_by_timeframe("acme", "widgets")
        assert exc.value.status_code == 502

    @pytest.mark.asyncio
    async def test_connection_error_is_503(self, github):
        def fail(request):
            raise httpx.ConnectError("connection refused", request=request)

        github(fail)
        with pytest.raises(HTTPException) as exc:
            await get_commits_by_timeframe("acme", "widgets")
        assert exc.value.status_code == 503

    @pytest.mark.asyncio
    async def test_commits_since_window(self, github):
        requests = github(lambda r: httpx.Response(200, json=[{"sha": "abc"}]))
        commits = await get_commits_by_timeframe("acme", "widgets", days=3)

        assert commits == [{"sha": "abc"}]
        since = datetime.fromisoformat(requests[0].url.params["since"].replace("Z", "+00:00"))
        assert abs((datetime.now(timezone.utc) - since) - timedelta(days=3)) < timedelta(minutes=1)

    @pytest.mark.asyncio
    async def test_merged_pull_requests_in_window(self, github):
        now = datetime.now(timezone.utc)
        github(lambda r: httpx.Response(200, json=[
            _pr(1, _iso(now - timedelta(days=1))),
            _pr(2, None),
            _pr(3, _iso(now - timedelta(days=30))),
        ]))

        prs = await get_merged_pull_requests("acme", "widgets", days=7)
        assert [(p.number, p.user, p.labels) for p in prs] == [(1, "sam", ["bug"])]

    @pytest.mark.asyncio
    async def test_invalid_token(self, github):
        github(lambda r: httpx.Response(401, json={"message": "Bad credentials"}))
        with pytest.raises(HTTPException) as exc:
            await verify_repository_access("acme", "widgets", "ghp_bad")
        assert (exc.value.status_code, exc.value.detail) == (400, "Invalid GitHub token")

    @pytest.mark.asyncio
    async def test_private_repository_without_token(self, github):
        github(lambda r: httpx.Response(404, json={"message": "Not Found"}))
        with pytest.raises(HTTPException) as exc:
            await verify_repository_access("acme", "secret")
        assert exc.value.status_code == 400
        assert "Personal Access Token" in exc.value.detail


WIDGETS = [RepoContext(owner="acme", repo="widgets")]


class TestTokenResolution:

    def test_integration_token_wins(self, db, session_factory, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "ghp_fallback")
        make_integration(db, token="ghp_stored")
        assert resolve_token("org_1", "acme", "widgets", session_factory) == "ghp_stored"

    def test_lookup_ignores_case(self, db, session_factory):
        make_integration(db, token="ghp_stored")
        assert resolve_token("org_1", "ACME", "Widgets", session_factory) == "ghp_stored"

    def test_disabled_integration_falls_back(self, db, session_factory, monkeypatch):
        monkeypatch.setenv("GITHUB_TOKEN", "ghp_fallback")
        integration, _ = make_integration(db, token="ghp_stored")
        IntegrationService(db).update_integration(integration.id, enabled=False)
        assert resolve_token("org_1", "acme", "widgets", session_factory) == "ghp_fallback"

    def test_other_organization_token_is_never_used(self, db, session_factory):
        make_integration(db, organization_id="org_2", token="ghp_org2")
        assert resolve_token("org_1", "acme", "widgets", session_factory) is None
        assert resolve_token("org_2", "acme", "widgets", session_factory) == "ghp_org2"

    def test_anonymous_when_nothing_configured(self, session_factory):
        assert resolve_token("org_1", "acme", "widgets", session_factory) is None


class TestGitHubTools:

    @pytest.mark.asyncio
    async def test_tool_uses_stored_token(self, db, session_factory, github):
        make_integration(db, token="ghp_stored")
        requests = github(lambda r: httpx.Response(200, json={"number": 5, "title": "Fix"}))
        get_pull_requests, _, _ = create_github_tools("org_1", WIDGETS, session_factory)

        result = await get_pull_requests("acme", "widgets", 5)

        assert result == {"success": True, "pull": {"number": 5, "title": "Fix"}}
        assert requests[0].headers["authorization"] == "Bearer ghp_stored"

    @pytest.mark.asyncio
    async def test_repository_outside_scope_is_rejected(self, db, session_factory, github):
        make_integration(db, token="ghp_org1")
        make_integration(db, organization_id="org_2", owner="rival", repo="secret", token="ghp_org2")
        requests = github(lambda r: httpx.Response(200, json={"number": 1}))
        get_pull_requests, get_release, get_commits = create_github_tools("org_1", WIDGETS, session_factory)

        results = [
            await get_pull_requests("rival", "secret", 1),
            await get_release("rival", "secret", "latest"),
            await get_commits("rival", "secret", 7),
        ]

        for result in results:
            assert result["success"] is False
            assert "rival/secret" in result["error"]
        assert requests == []

    @pytest.mark.asyncio
    async def test_token_lookup_runs_in_worker_thread(self, db, session_factory, github, monkeypatch):
        make_integration(db, token="ghp_stored")
        github(lambda r: httpx.Response(200, json=[]))
        offloaded = []
        real_to_thread = asyncio.to_thread

        async def to_thread(func, *args):
            offloaded.append((func.__name__, args[:3]))
            return await real_to_thread(func, *args)

        monkeypatch.setattr("notra.agno_tools.github_tools.asyncio.to_thread", to_thread)
        _, _, get_commits = create_github_tools("org_1", WIDGETS, session_factory)

        result = await get_commits("acme", "widgets", 3)

        assert result["success"] is True
        assert offloaded == [("resolve_token", ("org_1", "acme", "widgets"))]

    @pytest.mark.asyncio
    async def test_tool_errors_are_returned(self, session_factory, github):
        github(lambda r: httpx.Response(404, json={"message": "Not Found"}))
        _, get_release, get_commits = create_github_tools("org_1", WIDGETS, session_factory)

        result = await get_release("acme", "widgets", "v0")
        assert result["success"] is False
        assert "not found" in result["error"]
        assert get_release.__name__ == "get_release_by_tag"
        assert get_commits.__name__ == "get_commits_by_timeframe"
