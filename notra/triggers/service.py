"""
Trigger service: storage and de-duplication of content triggers.

Two triggers are duplicates when their normalized source type, source
config, targets and output type hash to the same value within one
organization.
"""

import hashlib
import json
import logging
from typing import Optional, List, Tuple

from sqlalchemy import desc
from sqlalchemy.orm import Session

from notra.db.models import ContentTrigger, utcnow
from notra.triggers.models import (
    TriggerConfig, TriggerOut, TriggerSourceConfig, TriggerSourceType, TriggerTargets
)

logger = logging.getLogger(__name__)


class TriggerError(Exception):
    """Base error for trigger operations."""


class DuplicateTriggerError(TriggerError):
    code = "DUPLICATE_TRIGGER"


class TriggerNotFoundError(TriggerError):
    pass


def normalize_trigger_config(
    source_config: TriggerSourceConfig,
    targets: TriggerTargets
) -> Tuple[TriggerSourceConfig, TriggerTargets]:
    """Sort event types and repository ids so equivalent configs compare equal."""
    event_types = sorted(source_config.event_types) if source_config.event_types is not None else None
    return (
        source_config.model_copy(update={"event_types": event_types}),
        TriggerTargets(repository_ids=sorted(targets.repository_ids))
    )


def hash_trigger(
    source_type: str,
    source_config: TriggerSourceConfig,
    targets: TriggerTargets,
    output_type: str
) -> str:
    source_config, targets = normalize_trigger_config(source_config, targets)
    payload = json.dumps(
        {
            "sourceType": source_type,
            "sourceConfig": source_config.model_dump(by_alias=True, exclude_none=True, mode="json"),
            "targets": targets.model_dump(by_alias=True, mode="json"),
            "outputType": output_type,
        },
        separators=(",", ":")
    )
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def to_trigger_out(trigger: ContentTrigger) -> TriggerOut:
    return TriggerOut(
        id=trigger.id,
        organization_id=trigger.organization_id,
        source_type=trigger.source_type,
        source_config=TriggerSourceConfig.model_validate(trigger.source_config or {}),
        targets=TriggerTargets.model_validate(trigger.targets),
        output_type=trigger.output_type,
        output_config=trigger.output_config,
        enabled=trigger.enabled,
        created_at=trigger.created_at,
        updated_at=trigger.updated_at
    )


class TriggerService:
    """Service for managing content triggers."""

    def __init__(self, db: Session):
        self.db = db

    def list_triggers(self, organization_id: str, source_type: TriggerSourceType) -> List[ContentTrigger]:
        return self.db.query(ContentTrigger).filter(
            ContentTrigger.organization_id == organization_id,
            ContentTrigger.source_type == source_type.value
        ).order_by(desc(ContentTrigger.created_at)).all()

    def get_trigger(self, organization_id: str, trigger_id: str) -> Optional[ContentTrigger]:
        return self.db.query(ContentTrigger).filter(
            ContentTrigger.id == trigger_id,
            ContentTrigger.organization_id == organization_id
        ).first()

    def get_trigger_by_id(self, trigger_id: str) -> Optional[ContentTrigger]:
        return self.db.get(ContentTrigger, trigger_id)

    def _find_duplicate(
        self,
        organization_id: str,
        dedupe_hash: str,
        exclude_id: Optional[str] = None
    ) -> Optional[ContentTrigger]:
        query = self.db.query(ContentTrigger).filter(
            ContentTrigger.organization_id == organization_id,
            ContentTrigger.dedupe_hash == dedupe_hash
        )
        if exclude_id:
            query = query.filter(ContentTrigger.id != exclude_id)
        return query.first()

    def _apply(self, trigger: ContentTrigger, config: TriggerConfig, dedupe_hash: str):
        source_config, targets = normalize_trigger_config(config.source_config, config.targets)
        trigger.source_type = config.source_type.value
        trigger.source_config = source_config.model_dump(by_alias=True, exclude_none=True, mode="json")
        trigger.targets = targets.model_dump(by_alias=True, mode="json")
        trigger.output_type = config.output_type.value
        trigger.output_config = (
            config.output_config.model_dump(by_alias=True, exclude_none=True, mode="json")
            if config.output_config else None
        )
        trigger.dedupe_hash = dedupe_hash
        trigger.enabled = config.enabled

    def create_trigger(self, organization_id: str, config: TriggerConfig) -> ContentTrigger:
        dedupe_hash = hash_trigger(
            config.source_type.value, config.source_config, config.targets, config.output_type.value
        )
        if self._find_duplicate(organization_id, dedupe_hash):
            raise DuplicateTriggerError("Duplicate trigger")

        trigger = ContentTrigger(organization_id=organization_id)
        self._apply(trigger, config, dedupe_hash)
        self.db.add(trigger)
        self.db.commit()
        self.db.refresh(trigger)

        logger.info(f"Created {trigger.source_type} trigger {trigger.id} for org {organization_id}")
        return trigger

    def update_trigger(self, organization_id: str, trigger_id: str, config: TriggerConfig) -> ContentTrigger:
        dedupe_hash = hash_trigger(
            config.source_type.value, config.source_config, config.targets, config.output_type.value
        )
        if self._find_duplicate(organization_id, dedupe_hash, exclude_id=trigger_id):
            raise DuplicateTriggerError("Duplicate trigger")

        trigger = self.get_trigger(organization_id, trigger_id)
        if not trigger:
            raise TriggerNotFoundError("Trigger not found")

        self._apply(trigger, config, dedupe_hash)
        trigger.updated_at = utcnow()
        self.db.commit()
        self.db.refresh(trigger)
        return trigger

    def delete_trigger(self, organization_id: str, trigger_id: str) -> bool:
        """Returns False when there was nothing to delete."""
        trigger = self.get_trigger(organization_id, trigger_id)
        if not trigger:
            return False
        self.db.delete(trigger)
        self.db.commit()
        logger.info(f"Deleted trigger {trigger_id} for org {organization_id}")
        return True

    def find_event_triggers(self, organization_id: str, repository_id: str, event_type: str) -> List[ContentTrigger]:
        """Enabled GitHub webhook triggers that target the repository and listen for the event."""
        candidates = self.db.query(ContentTrigger).filter(
            ContentTrigger.organization_id == organization_id,
            ContentTrigger.source_type == TriggerSourceType.GITHUB_WEBHOOK.value,
            ContentTrigger.enabled.is_(True)
        ).all()

        return [
            t for t in candidates
            if repository_id in (t.targets or {}).get("repositoryIds", [])
            and event_type in (t.source_config or {}).get("eventTypes", [])
        ]
