"""Data models for incoming webhooks."""

from typing import Optional, Dict, Any, Literal
from pydantic import BaseModel

WebhookProvider = Literal["github", "linear", "slack"]


class WebhookContext(BaseModel):
    """An incoming webhook request after the route has checked ownership."""
    provider: WebhookProvider
    organization_id: str
    integration_id: str
    repository_id: str
    headers: Dict[str, str]  # lower-cased names
    raw_body: str

    def header(self, name: str) -> Optional[str]:
        return self.headers.get(name.lower())


class WebhookResult(BaseModel):
    success: bool
    message: Optional[str] = None
    data: Optional[Dict[str, Any]] = None


class ProcessedEvent(BaseModel):
    """A GitHub event that passed filtering."""
    type: Literal["release", "push", "star"]
    action: str
    data: Dict[str, Any]
