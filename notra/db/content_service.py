"""
Content service for brand voice settings, brand analysis progress and
generated posts.
"""

import re
from datetime import timedelta
from typing import Optional, List, Dict, Any

import mistune
from sqlalchemy import desc
from sqlalchemy.orm import Session

from notra.db.models import BrandAnalysisProgress, BrandSettings, Post, utcnow

BRAND_FIELDS = (
    "company_name",
    "company_description",
    "tone_profile",
    "custom_tone",
    "custom_instructions",
    "audience",
    "website_url",
)

BRAND_ANALYSIS_STEPS = 3
BRAND_PROGRESS_TTL = timedelta(seconds=300)

TITLE_PATTERN = re.compile(r"^#\s+(.+)$", re.MULTILINE)


def render_markdown(markdown: str) -> str:
    return mistune.html(markdown)


class ContentService:
    """Service for brand settings and posts."""

    def __init__(self, db: Session):
        self.db = db

    # =============================================================================
    # Brand Settings
    # =============================================================================

    def get_brand_settings(self, organization_id: str) -> Optional[BrandSettings]:
        return self.db.query(BrandSettings).filter(
            BrandSettings.organization_id == organization_id
        ).first()

    def upsert_brand_settings(self, organization_id: str, values: Dict[str, Any]) -> BrandSettings:
        """Partial update; unknown keys are ignored."""
        settings = self.get_brand_settings(organization_id)
        if not settings:
            settings = BrandSettings(organization_id=organization_id)
            self.db.add(settings)

        for field in BRAND_FIELDS:
            if field in values:
                setattr(settings, field, values[field])

        self.db.commit()
        self.db.refresh(settings)
        return settings

    # =============================================================================
    # Brand Analysis Progress
    # =============================================================================

    def set_brand_progress(
        self,
        organization_id: str,
        status: str,
        current_step: int,
        error: Optional[str] = None
    ) -> BrandAnalysisProgress:
        progress = self.db.get(BrandAnalysisProgress, organization_id)
        if not progress:
            progress = BrandAnalysisProgress(organization_id=organization_id)
            self.db.add(progress)

        progress.status = status
        progress.current_step = current_step
        progress.total_steps = BRAND_ANALYSIS_STEPS
        progress.error = error
        progress.expires_at = utcnow() + BRAND_PROGRESS_TTL

        self.db.commit()
        self.db.refresh(progress)
        return progress

    def get_brand_progress(self, organization_id: str) -> Dict[str, Any]:
        """Latest progress, or idle when nothing ran recently."""
        progress = self.db.get(BrandAnalysisProgress, organization_id)
        if not progress or progress.expires_at <= utcnow():
            return {"status": "idle", "current_step": 0, "total_steps": BRAND_ANALYSIS_STEPS}

        data = {
            "status": progress.status,
            "current_step": progress.current_step,
            "total_steps": progress.total_steps,
        }
        if progress.error:
            data["error"] = progress.error
        return data

    # =============================================================================
    # Posts
    # =============================================================================

    def create_post(
        self,
        organization_id: str,
        title: str,
        markdown: str,
        content_type: str,
        source_trigger_id: Optional[str] = None
    ) -> Post:
        post = Post(
            organization_id=organization_id,
            title=title,
            content=markdown,
            markdown=markdown,
            content_type=content_type,
            source_trigger_id=source_trigger_id
        )
        self.db.add(post)
        self.db.commit()
        self.db.refresh(post)
        return post

    def list_posts(self, organization_id: str, limit: int = 50) -> List[Post]:
        return self.db.query(Post).filter(
            Post.organization_id == organization_id
        ).order_by(desc(Post.created_at)).limit(limit).all()

    def get_post(self, organization_id: str, post_id: str) -> Optional[Post]:
        return self.db.query(Post).filter(
            Post.id == post_id,
            Post.organization_id == organization_id
        ).first()

    def update_post_markdown(self, organization_id: str, post_id: str, markdown: str) -> Optional[Post]:
        """
        Replace a post's markdown.

        The title follows the first "# " heading when there is one, and the
        rendered HTML content is regenerated.
        """
        post = self.get_post(organization_id, post_id)
        if not post:
            return None

        match = TITLE_PATTERN.search(markdown)
        post.title = match.group(1).strip() if match else post.title
        post.markdown = markdown
        post.content = render_markdown(markdown)

        self.db.commit()
        self.db.refresh(post)
        return post

    def delete_post(self, organization_id: str, post_id: str) -> bool:
        post = self.get_post(organization_id, post_id)
        if not post:
            return False
        self.db.delete(post)
        self.db.commit()
        return True
