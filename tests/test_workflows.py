"""Tests for trigger runs and brand analysis with the model, GitHub and websites patched out."""

from unittest.mock import AsyncMock, patch

import pytest
from fastapi import HTTPException

from notra.agents.changelog import ChangelogGenerationError, ChangelogOutput
from notra.db.content_service import ContentService
from notra.db.models import Post
from notra.tools.github import GitHubPR
from notra.triggers.models import TriggerConfig
from notra.triggers.service import TriggerService
from notra.workflows import analyze_brand, analyze_brand_safely, run_trigger, run_trigger_safely
from notra.workflows.brand_analysis import BrandAnalysisError, BrandInfo
from tests.conftest import make_integration, make_trigger_body

PR = GitHubPR(
    number=7,
    title="Add bulk export",
    state="closed",
    draft=False,
    user="sam",
    body="Exports everything",
    labels=["feature"],
    created_at="2026-01-02T10:00:00Z",
    merged_at="2026-01-03T10:00:00Z",
    html_url="https://github.com/acme/widgets/pull/7"
)


def _trigger(db, repository_ids, output_type="changelog", enabled=True):
    body = make_trigger_body(repository_ids, output_type=output_type)
    body["enabled"] = enabled
    return TriggerService(db).create_trigger("org_1", TriggerConfig.model_validate(body))


@pytest.mark.asyncio
async def test_missing_trigger_is_cancelled(session_factory):
    result = await run_trigger("missing", session_factory)
    assert result.cancelled is True
    assert result.success is False


@pytest.mark.asyncio
async def test_disabled_trigger_is_cancelled(db, session_factory):
    _, repository = make_integration(db)
    trigger = _trigger(db, [repository.id], enabled=False)

    result = await run_trigger(trigger.id, session_factory)
    assert (result.cancelled, result.reason) == (True, "trigger is disabled")


@pytest.mark.asyncio
async def test_trigger_without_repositories_is_cancelled(db, session_factory):
    trigger = _trigger(db, ["gone"])
    result = await run_trigger(trigger.id, session_factory)
    assert (result.cancelled, result.reason) == (True, "no valid repositories")


@pytest.mark.asyncio
async def test_changelog_trigger_creates_post(db, session_factory):
    _, repository = make_integration(db)
    ContentService(db).upsert_brand_settings(
        "org_1", {"company_name": "Acme", "tone_profile": "Formal", "audience": "Developers"}
    )
    trigger = _trigger(db, [repository.id])

    generate = AsyncMock(return_value=ChangelogOutput(title="Week of exports", markdown="## Features\n- Export"))
    merged = AsyncMock(return_value=[PR])
    with patch("notra.agents.changelog.generate_changelog", generate), \
            patch("notra.tools.github.get_merged_pull_requests", merged):
        result = await run_trigger(trigger.id, session_factory)

    assert result.success is True
    post = db.get(Post, result.post_id)
    assert post.title == "Week of exports"
    assert post.content_type == "changelog"
    assert post.source_trigger_id == trigger.id

    options, prompt = generate.call_args.args
    assert options.organization_id == "org_1"
    assert options.tone == "Formal"
    assert options.company_name == "Acme"
    assert "acme/widgets" in prompt
    assert "Add bulk export" in prompt
    assert merged.call_args.args == ("acme", "widgets")
    assert merged.call_args.kwargs["days"] == 7


@pytest.mark.asyncio
async def test_unreadable_repository_is_skipped(db, session_factory):
    _, repository = make_integration(db)
    trigger = _trigger(db, [repository.id])

    generate = AsyncMock(return_value=ChangelogOutput(title="Quiet week", markdown="Nothing merged."))
    merged = AsyncMock(side_effect=HTTPException(status_code=404, detail="Repository acme/widgets not found"))
    with patch("notra.agents.changelog.generate_changelog", generate), \
            patch("notra.tools.github.get_merged_pull_requests", merged):
        result = await run_trigger(trigger.id, session_factory)

    assert result.success is True
    assert "Total PRs: 0" in generate.call_args.args[1]


@pytest.mark.asyncio
async def test_other_output_types_get_placeholder_post(db, session_factory):
    _, repository = make_integration(db)
    trigger = _trigger(db, [repository.id], output_type="blog_post")

    result = await run_trigger(trigger.id, session_factory)

    post = db.get(Post, result.post_id)
    assert post.content_type == "blog_post"
    assert "acme/widgets" in post.markdown


@pytest.mark.asyncio
async def test_safe_runner_reports_failures(db, session_factory):
    _, repository = make_integration(db)
    trigger = _trigger(db, [repository.id])

    with patch("notra.agents.changelog.generate_changelog",
               AsyncMock(side_effect=ChangelogGenerationError("empty draft"))), \
            patch("notra.tools.github.get_merged_pull_requests", AsyncMock(return_value=[])):
        result = await run_trigger_safely(trigger.id, session_factory)

    assert result.success is False
    assert result.reason == "empty draft"
    assert db.query(Post).count() == 0


BRAND = BrandInfo(
    company_name="Acme",
    company_description="Acme builds widgets for teams that ship every day.",
    tone_profile="Professional",
    audience="Engineering leads at growing startups."
)


@pytest.mark.asyncio
async def test_brand_analysis_saves_settings(db, session_factory):
    scrape = AsyncMock(return_value="# Acme\n\nWidgets for teams.")
    extract = AsyncMock(return_value=BRAND)
    with patch("notra.tools.website.scrape_website", scrape), \
            patch("notra.ai.llm.generate_structured", extract):
        result = await analyze_brand("org_1", "https://acme.dev", session_factory)

    assert result == BRAND
    scrape.assert_awaited_once_with("https://acme.dev")
    model_id, _, prompt, schema = extract.call_args.args
    assert schema is BrandInfo
    assert "Widgets for teams." in prompt

    content_service = ContentService(db)
    settings = content_service.get_brand_settings("org_1")
    assert (settings.company_name, settings.tone_profile, settings.website_url) == (
        "Acme", "Professional", "https://acme.dev"
    )
    assert content_service.get_brand_progress("org_1") == {
        "status": "completed", "current_step": 3, "total_steps": 3
    }


@pytest.mark.asyncio
async def test_brand_analysis_scrape_failure(db, session_factory):
    scrape = AsyncMock(side_effect=HTTPException(status_code=400, detail="Invalid URL"))
    with patch("notra.tools.website.scrape_website", scrape):
        with pytest.raises(BrandAnalysisError):
            await analyze_brand("org_1", "https://acme.dev", session_factory)

    assert ContentService(db).get_brand_progress("org_1") == {
        "status": "failed", "current_step": 1, "total_steps": 3, "error": "Invalid URL"
    }
    assert ContentService(db).get_brand_settings("org_1") is None


@pytest.mark.asyncio
async def test_brand_analysis_extraction_failure_is_logged_by_safe_runner(db, session_factory):
    with patch("notra.tools.website.scrape_website", AsyncMock(return_value="content")), \
            patch("notra.ai.llm.generate_structured", AsyncMock(return_value=None)):
        result = await analyze_brand_safely("org_1", "https://acme.dev", session_factory)

    assert result is None
    progress = ContentService(db).get_brand_progress("org_1")
    assert (progress["status"], progress["current_step"]) == ("failed", 2)
    assert progress["error"] == "Failed to extract brand information"


@pytest.mark.asyncio
async def test_changelog_agent_is_limited_to_trigger_repositories(db, session_factory):
    _, repository = make_integration(db)
    make_integration(db, owner="acme", repo="gadgets")
    trigger = _trigger(db, [repository.id])

    generate = AsyncMock(return_value=ChangelogOutput(title="T", markdown="M"))
    with patch("notra.agents.changelog.generate_changelog", generate), \
            patch("notra.tools.github.get_merged_pull_requests", AsyncMock(return_value=[])):
        await run_trigger(trigger.id, session_factory)

    options = generate.call_args.args[0]
    assert [(r.owner, r.repo) for r in options.repositories] == [("acme", "widgets")]
