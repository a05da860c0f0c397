"""Data models for content triggers."""

from enum import Enum
from typing import Optional, Literal
from datetime import datetime
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TriggerSourceType(str, Enum):
    """What fires a trigger."""
    GITHUB_WEBHOOK = "github_webhook"
    LINEAR_WEBHOOK = "linear_webhook"
    CRON = "cron"
    MANUAL = "manual"


class OutputContentType(str, Enum):
    CHANGELOG = "changelog"
    BLOG_POST = "blog_post"
    TWITTER_POST = "twitter_post"
    LINKEDIN_POST = "linkedin_post"
    INVESTOR_UPDATE = "investor_update"


WebhookEventType = Literal["release", "push", "star"]
CronFrequency = Literal["daily", "weekly", "monthly"]


class CronConfig(_CamelModel):
    frequency: CronFrequency
    hour: int = Field(ge=0, le=23)
    minute: int = Field(ge=0, le=59)
    day_of_week: Optional[int] = Field(default=None, ge=0, le=6)
    day_of_month: Optional[int] = Field(default=None, ge=1, le=31)


class TriggerSourceConfig(_CamelModel):
    event_types: Optional[list[WebhookEventType]] = None
    cron: Optional[CronConfig] = None


class TriggerTargets(_CamelModel):
    repository_ids: list[str] = Field(min_length=1)


class TriggerOutputConfig(_CamelModel):
    publish_destination: Optional[Literal["webflow", "framer", "custom"]] = None


class TriggerConfig(_CamelModel):
    """Body for creating or replacing a trigger."""
    source_type: TriggerSourceType
    source_config: TriggerSourceConfig
    targets: TriggerTargets
    output_type: OutputContentType
    output_config: Optional[TriggerOutputConfig] = None
    enabled: bool


class TriggerOut(_CamelModel):
    """Trigger as returned by the API."""
    id: str
    organization_id: str
    source_type: TriggerSourceType
    source_config: TriggerSourceConfig
    targets: TriggerTargets
    output_type: OutputContentType
    output_config: Optional[TriggerOutputConfig] = None
    enabled: bool
    created_at: datetime
    updated_at: datetime


class TriggerRunResult(BaseModel):
    """Outcome of running a trigger once."""
    success: bool
    trigger_id: str
    post_id: Optional[str] = None
    cancelled: bool = False
    reason: Optional[str] = None
