"""Database package for notra."""

from notra.db.database import get_db, init_db, get_session
from notra.db.models import (
    Base, GitHubIntegration, GitHubRepository, RepositoryOutput,
    BrandSettings, ContentTrigger, Post, WebhookLog
)

__all__ = [
    "get_db",
    "init_db",
    "get_session",
    "Base",
    "GitHubIntegration",
    "GitHubRepository",
    "RepositoryOutput",
    "BrandSettings",
    "ContentTrigger",
    "Post",
    "WebhookLog",
]
