"""Content triggers for notra: cron schedules and GitHub webhook events."""

from notra.triggers.cron import build_cron_expression
from notra.triggers.models import TriggerConfig, TriggerOut, TriggerSourceType
from notra.triggers.service import (
    TriggerService,
    DuplicateTriggerError,
    TriggerNotFoundError,
    hash_trigger,
    normalize_trigger_config
)

__all__ = [
    "build_cron_expression",
    "TriggerConfig",
    "TriggerOut",
    "TriggerSourceType",
    "TriggerService",
    "DuplicateTriggerError",
    "TriggerNotFoundError",
    "hash_trigger",
    "normalize_trigger_config",
]
