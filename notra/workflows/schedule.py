"""
Scheduled content generation.

run_trigger executes one trigger end to end: load it, resolve its target
repositories, generate content in the organization's brand voice and save
the result as a post.
"""

import asyncio
import json
import logging
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from fastapi import HTTPException
from sqlalchemy.orm import Session

from notra.db.content_service import ContentService
from notra.db.integration_service import IntegrationService
from notra.triggers.models import OutputContentType, TriggerRunResult
from notra.triggers.service import TriggerService

logger = logging.getLogger(__name__)

LOOKBACK_DAYS = 7


def _cancel(trigger_id: str, reason: str) -> TriggerRunResult:
    logger.info(f"Trigger {trigger_id}: {reason}, cancelling")
    return TriggerRunResult(success=False, trigger_id=trigger_id, cancelled=True, reason=reason)


async def build_changelog_request(organization_id: str, repositories, brand, session_factory) -> str:
    """Changelog prompt over the pull requests merged in the lookback window."""
    from notra.agno_tools.github_tools import resolve_token
    from notra.prompts.changelog import (
        ChangelogPromptParams, get_changelog_prompt_by_tone, get_valid_tone_profile
    )
    from notra.tools.github import get_merged_pull_requests

    pull_requests = []
    for repository in repositories:
        token = await asyncio.to_thread(
            resolve_token, organization_id, repository.owner, repository.repo, session_factory
        )
        try:
            prs = await get_merged_pull_requests(
                repository.owner, repository.repo, days=LOOKBACK_DAYS, token=token
            )
        except HTTPException as e:
            logger.warning(f"Skipping PRs for {repository.full_name}: {e.detail}")
            continue
        pull_requests.extend({"repository": repository.full_name, **pr.model_dump()} for pr in prs)

    end = datetime.now(timezone.utc)
    start = end - timedelta(days=LOOKBACK_DAYS)

    params = ChangelogPromptParams(
        repository=", ".join(r.full_name for r in repositories),
        start_date=start.date().isoformat(),
        end_date=end.date().isoformat(),
        total_count=len(pull_requests),
        pull_requests_data=json.dumps(pull_requests, indent=2),
        company_name=brand.company_name if brand else None,
        company_description=brand.company_description if brand else None,
        audience=brand.audience if brand else None,
        custom_instructions=brand.custom_instructions if brand else None
    )
    tone = get_valid_tone_profile(brand.tone_profile if brand else None, "Conversational")
    return get_changelog_prompt_by_tone(tone, params)


async def run_trigger(
    trigger_id: str,
    session_factory: Optional[Callable[[], Session]] = None
) -> TriggerRunResult:
    """
    Run a trigger once and save the generated post.

    Missing or disabled triggers, and triggers whose repositories no longer
    exist, are cancelled rather than treated as failures.
    """
    from notra.agents.changelog import ChangelogOptions, generate_changelog
    from notra.orchestration.models import RepoContext
    from notra.prompts.changelog import get_valid_tone_profile

    if session_factory is None:
        from notra.db.database import get_session
        session_factory = get_session

    db = session_factory()
    try:
        # Step 1: trigger
        trigger = TriggerService(db).get_trigger_by_id(trigger_id)
        if not trigger:
            return _cancel(trigger_id, "trigger not found")
        if not trigger.enabled:
            return _cancel(trigger_id, "trigger is disabled")

        # Step 2: target repositories
        repository_ids = (trigger.targets or {}).get("repositoryIds", [])
        repositories = [
            r for r in IntegrationService(db).get_repositories(repository_ids)
            if r.integration.organization_id == trigger.organization_id
        ]
        if not repositories:
            return _cancel(trigger_id, "no valid repositories")

        # Step 3: brand voice
        brand = ContentService(db).get_brand_settings(trigger.organization_id)

        # Step 4: content
        repo_list = ", ".join(r.full_name for r in repositories)
        if trigger.output_type == OutputContentType.CHANGELOG.value:
            prompt = await build_changelog_request(
                trigger.organization_id, repositories, brand, session_factory
            )
            output = await generate_changelog(
                ChangelogOptions(
                    organization_id=trigger.organization_id,
                    tone=get_valid_tone_profile(brand.tone_profile if brand else None, "Conversational"),
                    company_name=brand.company_name if brand else None,
                    company_description=brand.company_description if brand else None,
                    audience=brand.audience if brand else None,
                    custom_instructions=brand.custom_instructions if brand else None,
                    repositories=[RepoContext(owner=r.owner, repo=r.repo) for r in repositories]
                ),
                prompt
            )
            title, markdown = output.title, output.markdown
        else:
            logger.info(f"Output type {trigger.output_type} not fully implemented yet")
            title = f"{trigger.output_type} - {datetime.now(timezone.utc).date().isoformat()}"
            markdown = (
                f"*Automated {trigger.output_type} generation is coming soon.*\n\n"
                f"Repositories: {repo_list}"
            )

        # Step 5: save
        post = ContentService(db).create_post(
            trigger.organization_id,
            title=title,
            markdown=markdown,
            content_type=trigger.output_type,
            source_trigger_id=trigger.id
        )
        logger.info(f"Created post {post.id} for trigger {trigger_id}")

        return TriggerRunResult(success=True, trigger_id=trigger_id, post_id=post.id)
    finally:
        db.close()


async def run_trigger_safely(trigger_id: str, session_factory: Optional[Callable[[], Session]] = None):
    """Background-task entry point: failures are logged, never raised."""
    try:
        return await run_trigger(trigger_id, session_factory)
    except Exception as e:
        logger.error(f"Workflow failed for trigger {trigger_id}: {e}", exc_info=True)
        return TriggerRunResult(success=False, trigger_id=trigger_id, reason=str(e))
