"""Tests for GitHub webhook processing and the webhook log store."""

import json
from datetime import timedelta
from unittest.mock import AsyncMock, patch

import pytest

from notra.db.models import WebhookLog, utcnow
from notra.triggers.models import TriggerConfig
from notra.triggers.service import TriggerService
from notra.webhooks.github import (
    handle_github_webhook, process_push_event, process_release_event,
    process_star_event, should_persist_memory
)
from notra.webhooks.logs import (
    LOG_LIMIT, append_webhook_log, clamp_pagination, list_webhook_logs, paginate_logs
)
from notra.webhooks.models import WebhookContext
from tests.conftest import make_integration, make_trigger_body

RELEASE_PAYLOAD = {
    "action": "published",
    "release": {
        "tag_name": "v1.2.0",
        "name": "1.2.0",
        "body": "Faster sync",
        "draft": False,
        "prerelease": False,
        "published_at": "2026-01-05T10:00:00Z",
        "html_url": "https://github.com/acme/widgets/releases/tag/v1.2.0",
    },
    "repository": {"id": 42, "full_name": "acme/widgets", "default_branch": "main"},
}

PUSH_PAYLOAD = {
    "ref": "refs/heads/main",
    "repository": {"id": 42, "full_name": "acme/widgets", "default_branch": "main"},
    "commits": [{"id": "abc", "message": "Fix sync", "author": {"name": "Sam"}, "timestamp": "t", "url": "u"}],
    "head_commit": {"id": "abc", "message": "Fix sync"},
}


def _context(integration, repository, event, payload, delivery="delivery-1"):
    headers = {"content-type": "application/json"}
    if event:
        headers["x-github-event"] = event
    if delivery:
        headers["x-github-delivery"] = delivery
    return WebhookContext(
        provider="github",
        organization_id=integration.organization_id,
        integration_id=integration.id,
        repository_id=repository.id,
        headers=headers,
        raw_body=payload if isinstance(payload, str) else json.dumps(payload)
    )


class TestEventFilters:

    @pytest.mark.parametrize("action", ["published", "created", "edited", "prereleased"])
    def test_release_actions_processed(self, action):
        event = process_release_event(action, RELEASE_PAYLOAD)
        assert event.type == "release"
        assert event.data["tag_name"] == "v1.2.0"

    def test_release_other_action_filtered(self):
        assert process_release_event("deleted", RELEASE_PAYLOAD) is None

    def test_draft_release_only_when_created(self):
        payload = {**RELEASE_PAYLOAD, "release": {**RELEASE_PAYLOAD["release"], "draft": True}}
        assert process_release_event("published", payload) is None
        assert process_release_event("created", payload).data["draft"] is True

    def test_push_to_default_branch(self):
        event = process_push_event(PUSH_PAYLOAD)
        assert event.action == "pushed"
        assert event.data["branch"] == "main"
        assert event.data["commits"][0]["message"] == "Fix sync"

    def test_push_to_other_branch_filtered(self):
        assert process_push_event({**PUSH_PAYLOAD, "ref": "refs/heads/feature"}) is None

    def test_push_without_commits_filtered(self):
        assert process_push_event({**PUSH_PAYLOAD, "commits": []}) is None

    def test_star_count_fallback(self):
        event = process_star_event("created", {"star_count": 100, "sender": {"login": "octo"}})
        assert event.data == {"starred_at": None, "user": "octo", "stargazers_count": 100}

    def test_star_deleted_filtered(self):
        assert process_star_event("deleted", {"repository": {"stargazers_count": 10}}) is None

    def test_only_milestone_stars_persist(self):
        assert should_persist_memory(process_star_event("created", {"repository": {"stargazers_count": 250}}))
        assert not should_persist_memory(process_star_event("created", {"repository": {"stargazers_count": 251}}))
        assert should_persist_memory(process_push_event(PUSH_PAYLOAD))


class TestHandleGitHubWebhook:

    @pytest.mark.asyncio
    async def test_missing_event_header(self, db):
        integration, repository = make_integration(db)
        result = await handle_github_webhook(db, _context(integration, repository, None, {}))

        assert result.success is False
        assert result.message == "Missing X-GitHub-Event header"
        log = list_webhook_logs(db, "org_1")[0]
        assert (log.status, log.status_code) == ("failed", 400)

    @pytest.mark.asyncio
    async def test_ping(self, db):
        integration, repository = make_integration(db)
        result = await handle_github_webhook(db, _context(integration, repository, "ping", {"zen": "hi"}))

        assert result.success is True
        assert result.message.startswith("Pong!")
        assert list_webhook_logs(db, "org_1")[0].reference_id == "delivery-1"

    @pytest.mark.asyncio
    async def test_invalid_json(self, db):
        integration, repository = make_integration(db)
        result = await handle_github_webhook(db, _context(integration, repository, "push", "{not json"))

        assert result.success is False
        assert result.message == "Invalid JSON payload"

    @pytest.mark.asyncio
    async def test_unhandled_event_is_ignored(self, db):
        integration, repository = make_integration(db)
        result = await handle_github_webhook(db, _context(integration, repository, "issues", {"action": "opened"}))

        assert result.success is True
        assert result.data["ignored"] is True

    @pytest.mark.asyncio
    async def test_filtered_event(self, db):
        integration, repository = make_integration(db)
        payload = {**PUSH_PAYLOAD, "ref": "refs/heads/feature"}
        result = await handle_github_webhook(db, _context(integration, repository, "push", payload))

        assert result.success is True
        assert result.data["filtered"] is True

    @pytest.mark.asyncio
    async def test_release_writes_memory_and_matches_triggers(self, db):
        integration, repository = make_integration(db)
        service = TriggerService(db)
        matching = service.create_trigger(
            "org_1", TriggerConfig.model_validate(make_trigger_body([repository.id], "github_webhook"))
        )
        service.create_trigger(
            "org_1",
            TriggerConfig.model_validate(
                make_trigger_body([repository.id], "github_webhook", eventTypes=["star"])
            )
        )

        memory = AsyncMock(return_value=True)
        with patch("notra.webhooks.github.create_memory_entry", memory):
            result = await handle_github_webhook(db, _context(integration, repository, "release", RELEASE_PAYLOAD))

        assert result.success is True
        assert result.data["trigger_ids"] == [matching.id]
        assert result.data["repository"] == {"id": 42, "full_name": "acme/widgets"}
        organization_id, event, repository_name, custom_id = memory.call_args.args
        assert (organization_id, event.type, repository_name) == ("org_1", "release", "acme/widgets")
        assert custom_id == f"github:{repository.id}:delivery-1"

    @pytest.mark.asyncio
    async def test_memory_failure_does_not_fail_webhook(self, db):
        integration, repository = make_integration(db)
        with patch("notra.webhooks.github.create_memory_entry", AsyncMock(side_effect=RuntimeError("down"))):
            result = await handle_github_webhook(db, _context(integration, repository, "push", PUSH_PAYLOAD))

        assert result.success is True
        assert list_webhook_logs(db, "org_1")[0].title == "Processed push event"

    @pytest.mark.asyncio
    async def test_non_milestone_star_skips_memory(self, db):
        integration, repository = make_integration(db)
        memory = AsyncMock(return_value=True)
        payload = {"action": "created", "repository": {"stargazers_count": 11}}
        with patch("notra.webhooks.github.create_memory_entry", memory):
            result = await handle_github_webhook(db, _context(integration, repository, "star", payload))

        assert result.success is True
        memory.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_memory_entry_generates_text(self, db, monkeypatch):
        from notra.webhooks.github import create_memory_entry

        monkeypatch.setenv("SUPERMEMORY_API_KEY", "sm-test")
        event = process_push_event(PUSH_PAYLOAD)
        with patch("notra.ai.llm.generate_text", AsyncMock(return_value=" Sam fixed sync on main. ")), \
                patch("notra.ai.memory.add_memory", AsyncMock(return_value=True)) as add_memory:
            assert await create_memory_entry("org_1", event, "acme/widgets", "github:r:d") is True

        args, kwargs = add_memory.call_args
        assert args == ("org_1", "Sam fixed sync on main.")
        assert kwargs["custom_id"] == "github:r:d"
        assert kwargs["metadata"]["eventType"] == "push"


class TestWebhookLogs:

    def _append(self, db, integration_id="int_1", **kwargs):
        values = dict(
            organization_id="org_1",
            integration_id=integration_id,
            integration_type="github",
            title="Processed push event",
            status="success",
            status_code=200
        )
        values.update(kwargs)
        return append_webhook_log(db, **values)

    def test_append_sets_id_and_direction(self, db):
        log = self._append(db, reference_id="d-1", payload={"event": "push"})
        assert log.id.startswith("log_") and len(log.id) == 12
        assert log.direction == "incoming"
        assert log.created_at.endswith("Z")

    def test_invalid_retention_rejected(self, db):
        with pytest.raises(ValueError):
            self._append(db, retention_days=14)

    def test_keeps_newest_per_integration(self, db):
        for i in range(LOG_LIMIT + 5):
            self._append(db, title=f"event {i}")
        self._append(db, integration_id="int_2")

        logs = list_webhook_logs(db, "org_1", "github", "int_1")
        assert len(logs) == LOG_LIMIT
        assert db.query(WebhookLog).filter(WebhookLog.integration_id == "int_2").count() == 1

    def test_expired_logs_are_hidden_and_purged(self, db):
        self._append(db, retention_days=7)
        db.query(WebhookLog).update({WebhookLog.expires_at: utcnow() - timedelta(minutes=1)})
        db.commit()

        assert list_webhook_logs(db, "org_1") == []
        self._append(db)
        assert db.query(WebhookLog).count() == 1

    def test_listing_without_integration_returns_everything(self, db):
        self._append(db, integration_id="int_1")
        self._append(db, integration_id="int_2", integration_type="manual")
        assert len(list_webhook_logs(db, "org_1")) == 2
        assert len(list_webhook_logs(db, "org_1", "github", "int_2")) == 0
        assert len(list_webhook_logs(db, "org_2")) == 0

    @pytest.mark.parametrize("page, page_size, expected", [
        (None, None, (1, 10)),
        (0, 0, (1, 1)),
        (3, 500, (3, 100)),
        (-2, 25, (1, 25)),
    ])
    def test_clamp_pagination(self, page, page_size, expected):
        assert clamp_pagination(page, page_size) == expected

    def test_paginate(self, db):
        for i in range(5):
            self._append(db, title=f"event {i}")
        response = paginate_logs(list_webhook_logs(db, "org_1"), page=2, page_size=2)
        assert len(response.logs) == 2
        assert response.pagination.total_count == 5
        assert response.pagination.total_pages == 3
