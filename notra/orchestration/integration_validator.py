"""
Decides which of the integrations a chat references may actually be used.

An integration is only usable when it belongs to the requesting organization,
is enabled, and has at least one enabled repository the user attached.
"""

import logging
from typing import List

from sqlalchemy.orm import Session

from notra.db.integration_service import IntegrationService
from notra.orchestration.models import (
    ContextItem, RepoContext, ValidatedIntegration, ValidatedRepository
)

logger = logging.getLogger(__name__)


def validate_integrations(
    db: Session,
    organization_id: str,
    context_items: List[ContextItem]
) -> List[ValidatedIntegration]:
    if not context_items:
        return []

    integration_ids = list(dict.fromkeys(item.integration_id for item in context_items))
    service = IntegrationService(db)
    validated = []

    for integration_id in integration_ids:
        try:
            integration = service.get_integration(integration_id)

            if not integration:
                logger.warning(f"Integration not found: {integration_id}")
                continue

            if integration.organization_id != organization_id:
                logger.warning(f"Integration {integration_id} does not belong to org {organization_id}")
                continue

            if not integration.enabled:
                logger.warning(f"Integration {integration_id} is disabled")
                continue

            context_repos = {
                (item.owner, item.repo)
                for item in context_items
                if item.integration_id == integration_id
            }

            repositories = [
                ValidatedRepository(id=r.id, owner=r.owner, repo=r.repo, enabled=r.enabled)
                for r in integration.repositories
                if r.enabled and (r.owner, r.repo) in context_repos
            ]

            if not repositories:
                logger.warning(f"No enabled repositories for integration {integration_id}")
                continue

            validated.append(ValidatedIntegration(
                id=integration.id,
                type="github",
                enabled=integration.enabled,
                display_name=integration.display_name,
                organization_id=integration.organization_id,
                repositories=repositories
            ))
        except Exception as e:
            logger.error(f"Error validating integration {integration_id}: {e}", exc_info=True)

    return validated


def has_enabled_github_integration(validated: List[ValidatedIntegration]) -> bool:
    return any(
        i.type == "github" and i.enabled and len(i.repositories) > 0
        for i in validated
    )


def get_repo_contexts(validated: List[ValidatedIntegration]) -> List[RepoContext]:
    return [
        RepoContext(owner=r.owner, repo=r.repo)
        for i in validated
        for r in i.repositories
    ]
