"""
Brand analysis.

analyze_brand scrapes an organization's website, asks a model for its brand
identity and saves the result as the organization's brand settings. Progress
is recorded after every step so the dashboard can poll it.
"""

import logging
from typing import Callable, Optional

from fastapi import HTTPException
from pydantic import BaseModel, Field
from sqlalchemy.orm import Session

from notra.db.content_service import ContentService
from notra.prompts.changelog import ToneProfile

logger = logging.getLogger(__name__)

EXTRACTION_MODEL = "google/gemini-2.0-flash-001"

BRAND_ANALYST_SYSTEM = (
    "You are a brand analyst expert. Your job is to analyze website content and extract key brand "
    "identity information. Be thorough but concise. Focus on understanding the company's essence, "
    "values, and how they communicate."
)


class BrandAnalysisError(Exception):
    """A brand analysis step failed."""


class BrandInfo(BaseModel):
    company_name: str = Field(min_length=1, description="The name of the company")
    company_description: str = Field(
        min_length=10,
        description="What the company does, their mission, and what makes them unique (2-4 sentences)"
    )
    tone_profile: ToneProfile = Field(description="The tone of their communication")
    custom_tone: Optional[str] = None
    audience: str = Field(min_length=10, description="Their target audience (1-2 sentences)")


def build_brand_prompt(content: str) -> str:
    return f"""Analyze this website content and extract brand identity information.

Website content:
{content}

Extract the following information:
1. company_name: The name of the company
2. company_description: A comprehensive description of what the company does, their mission, and what makes them unique (2-4 sentences)
3. tone_profile: The tone of their communication - choose one of: "Conversational", "Professional", "Casual", "Formal"
4. audience: A description of their target audience (1-2 sentences)"""


async def analyze_brand(
    organization_id: str,
    url: str,
    session_factory: Optional[Callable[[], Session]] = None
) -> BrandInfo:
    """
    Run the three brand analysis steps: scrape, extract, save.

    Raises:
        BrandAnalysisError: after recording a "failed" progress entry
    """
    from notra.ai.llm import generate_structured
    from notra.tools.website import scrape_website

    if session_factory is None:
        from notra.db.database import get_session
        session_factory = get_session

    db = session_factory()
    try:
        content_service = ContentService(db)

        # Step 1: scrape
        content_service.set_brand_progress(organization_id, "scraping", 1)
        try:
            content = await scrape_website(url)
        except HTTPException as e:
            content_service.set_brand_progress(organization_id, "failed", 1, error=e.detail)
            raise BrandAnalysisError(e.detail)

        # Step 2: extract
        content_service.set_brand_progress(organization_id, "extracting", 2)
        try:
            brand_info = await generate_structured(
                EXTRACTION_MODEL, BRAND_ANALYST_SYSTEM, build_brand_prompt(content), BrandInfo
            )
        except Exception as e:
            logger.error(f"Brand extraction failed for org {organization_id}: {e}", exc_info=True)
            brand_info = None
        if brand_info is None:
            error = "Failed to extract brand information"
            content_service.set_brand_progress(organization_id, "failed", 2, error=error)
            raise BrandAnalysisError(error)

        # Step 3: save
        content_service.set_brand_progress(organization_id, "saving", 3)
        content_service.upsert_brand_settings(organization_id, {
            **brand_info.model_dump(),
            "website_url": url,
        })

        content_service.set_brand_progress(organization_id, "completed", 3)
        logger.info(f"Brand analysis completed for org {organization_id} ({url})")
        return brand_info
    finally:
        db.close()


async def analyze_brand_safely(
    organization_id: str,
    url: str,
    session_factory: Optional[Callable[[], Session]] = None
) -> Optional[BrandInfo]:
    """Background-task entry point: failures are logged, never raised."""
    try:
        return await analyze_brand(organization_id, url, session_factory)
    except BrandAnalysisError as e:
        logger.warning(f"Brand analysis failed for org {organization_id}: {e}")
    except Exception as e:
        logger.error(f"Brand analysis crashed for org {organization_id}: {e}", exc_info=True)
        if session_factory is None:
            from notra.db.database import get_session
            session_factory = get_session
        db = session_factory()
        try:
            ContentService(db).set_brand_progress(
                organization_id, "failed", 0, error="Workflow failed unexpectedly"
            )
        finally:
            db.close()
    return None
