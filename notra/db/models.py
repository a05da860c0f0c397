"""
Database models for notra.

Stores connected GitHub integrations, brand voice, content triggers,
generated posts and incoming webhook logs.
"""

import secrets
import string
from datetime import datetime, timezone
from sqlalchemy import (
    Column, Integer, String, Text, DateTime, Boolean,
    JSON, ForeignKey
)
from sqlalchemy.orm import declarative_base, relationship

Base = declarative_base()

_ID_ALPHABET = string.ascii_lowercase + string.digits


def generate_id(length: int = 16) -> str:
    """Random lowercase alphanumeric id."""
    return "".join(secrets.choice(_ID_ALPHABET) for _ in range(length))


def utcnow() -> datetime:
    """Naive UTC timestamp (SQLite drops tzinfo anyway)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class GitHubIntegration(Base):
    """A connected GitHub account/token scoped to one organization."""
    __tablename__ = "github_integrations"

    id = Column(String(32), primary_key=True, default=generate_id)
    organization_id = Column(String(255), nullable=False, index=True)
    created_by_user_id = Column(String(255), nullable=True)
    access_token = Column(Text, nullable=True)  # None for public repositories
    display_name = Column(String(255), nullable=False)
    enabled = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    repositories = relationship(
        "GitHubRepository",
        back_populates="integration",
        cascade="all, delete-orphan",
        order_by="GitHubRepository.created_at",
    )


class GitHubRepository(Base):
    """A repository made available through an integration."""
    __tablename__ = "github_repositories"

    id = Column(String(32), primary_key=True, default=generate_id)
    integration_id = Column(String(32), ForeignKey("github_integrations.id"), nullable=False, index=True)
    owner = Column(String(255), nullable=False)
    repo = Column(String(255), nullable=False)
    enabled = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    integration = relationship("GitHubIntegration", back_populates="repositories")
    outputs = relationship(
        "RepositoryOutput",
        back_populates="repository",
        cascade="all, delete-orphan",
    )

    @property
    def full_name(self) -> str:
        return f"{self.owner}/{self.repo}"


class RepositoryOutput(Base):
    """Which content types a repository produces."""
    __tablename__ = "repository_outputs"

    id = Column(String(32), primary_key=True, default=generate_id)
    repository_id = Column(String(32), ForeignKey("github_repositories.id"), nullable=False, index=True)
    output_type = Column(String(50), nullable=False)  # 'changelog', 'blog_post', ...
    enabled = Column(Boolean, nullable=False, default=False)
    config = Column(JSON, nullable=True)

    repository = relationship("GitHubRepository", back_populates="outputs")


class BrandSettings(Base):
    """Brand voice used when generating content for an organization."""
    __tablename__ = "brand_settings"

    id = Column(Integer, primary_key=True)
    organization_id = Column(String(255), unique=True, nullable=False, index=True)
    company_name = Column(String(255), nullable=True)
    company_description = Column(Text, nullable=True)
    tone_profile = Column(String(50), nullable=True)
    custom_tone = Column(Text, nullable=True)
    custom_instructions = Column(Text, nullable=True)
    audience = Column(Text, nullable=True)
    website_url = Column(String(2048), nullable=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class BrandAnalysisProgress(Base):
    """Progress of the latest website brand analysis, kept for a short window."""
    __tablename__ = "brand_analysis_progress"

    organization_id = Column(String(255), primary_key=True)
    status = Column(String(20), nullable=False)  # idle, scraping, extracting, saving, completed, failed
    current_step = Column(Integer, nullable=False, default=0)
    total_steps = Column(Integer, nullable=False, default=3)
    error = Column(Text, nullable=True)
    expires_at = Column(DateTime, nullable=False)


class ContentTrigger(Base):
    """A cron schedule or webhook event that causes automated generation."""
    __tablename__ = "content_triggers"

    id = Column(String(32), primary_key=True, default=generate_id)
    organization_id = Column(String(255), nullable=False, index=True)
    source_type = Column(String(50), nullable=False, index=True)  # 'cron', 'github_webhook', ...
    source_config = Column(JSON, nullable=False, default=dict)
    targets = Column(JSON, nullable=False, default=dict)  # {"repositoryIds": [...]}
    output_type = Column(String(50), nullable=False)
    output_config = Column(JSON, nullable=True)
    dedupe_hash = Column(String(64), nullable=False, index=True)
    enabled = Column(Boolean, nullable=False, default=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class Post(Base):
    """Generated content."""
    __tablename__ = "posts"

    id = Column(String(32), primary_key=True, default=generate_id)
    organization_id = Column(String(255), nullable=False, index=True)
    title = Column(String(500), nullable=False)
    content = Column(Text, nullable=False)
    markdown = Column(Text, nullable=False)
    content_type = Column(String(50), nullable=False)
    source_trigger_id = Column(String(32), nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)


class WebhookLog(Base):
    """Incoming webhook / manual run log entry, kept for a retention window."""
    __tablename__ = "webhook_logs"

    id = Column(String(32), primary_key=True)
    organization_id = Column(String(255), nullable=False, index=True)
    integration_type = Column(String(50), nullable=False)  # 'github', 'manual', ...
    integration_id = Column(String(255), nullable=False, index=True)
    reference_id = Column(String(255), nullable=True)
    title = Column(String(500), nullable=False)
    direction = Column(String(20), nullable=False, default="incoming")
    status = Column(String(20), nullable=False)  # 'success', 'failed', 'pending'
    status_code = Column(Integer, nullable=True)
    error_message = Column(Text, nullable=True)
    payload = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False, index=True)
    expires_at = Column(DateTime, nullable=False, index=True)
