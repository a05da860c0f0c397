"""Tests for trigger hashing, cron expressions and the trigger service."""

import pytest
from pydantic import ValidationError

from notra.triggers.cron import build_cron_expression
from notra.triggers.models import (
    CronConfig, TriggerConfig, TriggerSourceConfig, TriggerSourceType, TriggerTargets
)
from notra.triggers.service import (
    DuplicateTriggerError, TriggerNotFoundError, TriggerService,
    hash_trigger, normalize_trigger_config, to_trigger_out
)
from tests.conftest import make_integration, make_trigger_body


def _config(repository_ids, source_type="cron", **source_config):
    return TriggerConfig.model_validate(make_trigger_body(repository_ids, source_type, **source_config))


class TestNormalizeAndHash:

    def test_normalize_sorts_lists(self):
        source, targets = normalize_trigger_config(
            TriggerSourceConfig(event_types=["star", "push", "release"]),
            TriggerTargets(repository_ids=["b", "a"])
        )
        assert source.event_types == ["push", "release", "star"]
        assert targets.repository_ids == ["a", "b"]

    def test_hash_ignores_list_order(self):
        first = hash_trigger(
            "github_webhook",
            TriggerSourceConfig(event_types=["push", "release"]),
            TriggerTargets(repository_ids=["r1", "r2"]),
            "changelog"
        )
        second = hash_trigger(
            "github_webhook",
            TriggerSourceConfig(event_types=["release", "push"]),
            TriggerTargets(repository_ids=["r2", "r1"]),
            "changelog"
        )
        assert first == second
        assert len(first) == 64

    def test_hash_depends_on_output_type(self):
        source = TriggerSourceConfig(cron=CronConfig(frequency="daily", hour=9, minute=0))
        targets = TriggerTargets(repository_ids=["r1"])
        assert hash_trigger("cron", source, targets, "changelog") != hash_trigger("cron", source, targets, "blog_post")

    def test_empty_targets_rejected(self):
        with pytest.raises(ValidationError):
            TriggerTargets(repository_ids=[])

    def test_cron_bounds(self):
        with pytest.raises(ValidationError):
            CronConfig(frequency="daily", hour=24, minute=0)


class TestCronExpression:

    @pytest.mark.parametrize("cron, expected", [
        (CronConfig(frequency="daily", hour=9, minute=30), "30 9 * * *"),
        (CronConfig(frequency="weekly", hour=8, minute=0, day_of_week=5), "0 8 * * 5"),
        (CronConfig(frequency="weekly", hour=8, minute=0), "0 8 * * 1"),
        (CronConfig(frequency="monthly", hour=0, minute=15, day_of_month=28), "15 0 28 * *"),
        (CronConfig(frequency="monthly", hour=0, minute=15), "15 0 1 * *"),
    ])
    def test_expressions(self, cron, expected):
        assert build_cron_expression(cron) == expected

    def test_no_cron(self):
        assert build_cron_expression(None) is None


class TestTriggerService:

    def test_create_stores_normalized_config(self, db):
        _, repository = make_integration(db)
        trigger = TriggerService(db).create_trigger(
            "org_1", _config([repository.id], "github_webhook", eventTypes=["star", "release"])
        )
        assert trigger.source_config == {"eventTypes": ["release", "star"]}
        assert trigger.targets == {"repositoryIds": [repository.id]}

        out = to_trigger_out(trigger)
        assert out.source_type == TriggerSourceType.GITHUB_WEBHOOK
        assert out.source_config.event_types == ["release", "star"]

    def test_duplicate_rejected_within_organization(self, db):
        service = TriggerService(db)
        service.create_trigger("org_1", _config(["r1", "r2"]))

        with pytest.raises(DuplicateTriggerError) as exc:
            service.create_trigger("org_1", _config(["r2", "r1"]))
        assert exc.value.code == "DUPLICATE_TRIGGER"

        # another organization may hold the same configuration
        service.create_trigger("org_2", _config(["r1", "r2"]))

    def test_update_to_itself_is_allowed(self, db):
        service = TriggerService(db)
        trigger = service.create_trigger("org_1", _config(["r1"]))
        body = make_trigger_body(["r1"])
        body["enabled"] = False

        updated = service.update_trigger("org_1", trigger.id, TriggerConfig.model_validate(body))
        assert updated.enabled is False

    def test_update_to_other_trigger_is_duplicate(self, db):
        service = TriggerService(db)
        service.create_trigger("org_1", _config(["r1"]))
        other = service.create_trigger("org_1", _config(["r2"]))

        with pytest.raises(DuplicateTriggerError):
            service.update_trigger("org_1", other.id, _config(["r1"]))

    def test_update_missing(self, db):
        with pytest.raises(TriggerNotFoundError):
            TriggerService(db).update_trigger("org_1", "missing", _config(["r1"]))

    def test_delete_is_idempotent(self, db):
        service = TriggerService(db)
        trigger = service.create_trigger("org_1", _config(["r1"]))
        assert service.delete_trigger("org_1", trigger.id) is True
        assert service.delete_trigger("org_1", trigger.id) is False

    def test_list_filters_by_source_type(self, db):
        service = TriggerService(db)
        service.create_trigger("org_1", _config(["r1"]))
        service.create_trigger("org_1", _config(["r1"], "github_webhook"))

        assert len(service.list_triggers("org_1", TriggerSourceType.CRON)) == 1
        assert len(service.list_triggers("org_1", TriggerSourceType.GITHUB_WEBHOOK)) == 1

    def test_find_event_triggers(self, db):
        service = TriggerService(db)
        release = service.create_trigger("org_1", _config(["r1"], "github_webhook", eventTypes=["release"]))
        service.create_trigger("org_1", _config(["r2"], "github_webhook", eventTypes=["release"]))
        disabled_body = make_trigger_body(["r1"], "github_webhook", eventTypes=["release", "push"])
        disabled_body["enabled"] = False
        service.create_trigger("org_1", TriggerConfig.model_validate(disabled_body))

        assert [t.id for t in service.find_event_triggers("org_1", "r1", "release")] == [release.id]
        assert service.find_event_triggers("org_1", "r1", "push") == []
