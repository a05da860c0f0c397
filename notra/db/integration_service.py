"""
Integration service for connected GitHub accounts and their repositories.

Provides the lookups the orchestration layer, the GitHub tools and the
webhook endpoint rely on.
"""

import logging
from typing import Optional, List, Dict, Any
from sqlalchemy import func
from sqlalchemy.orm import Session

from notra.config import get_app_url
from notra.db.models import GitHubIntegration, GitHubRepository, RepositoryOutput
from notra.db.token_encryption import decrypt_token, encrypt_token

logger = logging.getLogger(__name__)

# Outputs seeded for the first repository of a new integration
INTEGRATION_DEFAULT_OUTPUTS = [
    {"type": "changelog", "enabled": True},
    {"type": "blog_post", "enabled": False},
    {"type": "twitter_post", "enabled": False},
]

# Outputs seeded when a repository is added to an existing integration
REPOSITORY_DEFAULT_OUTPUTS = [
    {"type": "changelog", "enabled": True},
    {"type": "blog_post", "enabled": False},
    {"type": "twitter_post", "enabled": False},
    {"type": "linkedin_post", "enabled": False},
    {"type": "investor_update", "enabled": False},
]


class IntegrationError(Exception):
    """Base error for integration operations."""


class IntegrationNotFoundError(IntegrationError):
    pass


class DuplicateRepositoryError(IntegrationError):
    pass


class IntegrationService:
    """Service for managing GitHub integrations."""

    def __init__(self, db: Session):
        self.db = db

    # =============================================================================
    # Integrations
    # =============================================================================

    def create_github_integration(
        self,
        organization_id: str,
        owner: str,
        repo: str,
        display_name: Optional[str] = None,
        token: Optional[str] = None,
        user_id: Optional[str] = None
    ) -> GitHubIntegration:
        """Connect a repository, creating the integration that owns it."""
        if self.find_repository_in_organization(organization_id, owner, repo):
            raise DuplicateRepositoryError("Repository already connected")

        integration = GitHubIntegration(
            organization_id=organization_id,
            created_by_user_id=user_id,
            access_token=encrypt_token(token) if token else None,
            display_name=display_name or f"{owner}/{repo}",
            enabled=True
        )
        self.db.add(integration)
        self.db.flush()

        self._add_repository_row(integration, owner, repo, INTEGRATION_DEFAULT_OUTPUTS)

        self.db.commit()
        self.db.refresh(integration)
        logger.info(f"Created GitHub integration {integration.id} for {owner}/{repo} (org {organization_id})")
        return integration

    def get_integration(self, integration_id: str) -> Optional[GitHubIntegration]:
        return self.db.get(GitHubIntegration, integration_id)

    def list_integrations(self, organization_id: str) -> List[GitHubIntegration]:
        return self.db.query(GitHubIntegration).filter(
            GitHubIntegration.organization_id == organization_id
        ).order_by(GitHubIntegration.created_at).all()

    def update_integration(
        self,
        integration_id: str,
        enabled: bool,
        display_name: Optional[str] = None
    ) -> GitHubIntegration:
        integration = self.get_integration(integration_id)
        if not integration:
            raise IntegrationNotFoundError("Integration not found")

        integration.enabled = enabled
        if display_name:
            integration.display_name = display_name

        self.db.commit()
        self.db.refresh(integration)
        return integration

    def delete_integration(self, integration_id: str) -> bool:
        integration = self.get_integration(integration_id)
        if not integration:
            return False
        self.db.delete(integration)
        self.db.commit()
        return True

    # =============================================================================
    # Repositories
    # =============================================================================

    def add_repository(
        self,
        integration_id: str,
        owner: str,
        repo: str,
        outputs: Optional[List[Dict[str, Any]]] = None
    ) -> GitHubRepository:
        integration = self.get_integration(integration_id)
        if not integration:
            raise IntegrationNotFoundError("Integration not found")

        owner, repo = owner.strip(), repo.strip()
        if self.find_repository_in_organization(integration.organization_id, owner, repo):
            raise DuplicateRepositoryError("Repository already connected")

        repository = self._add_repository_row(
            integration, owner, repo, outputs or REPOSITORY_DEFAULT_OUTPUTS
        )
        self.db.commit()
        self.db.refresh(repository)
        return repository

    def get_repository(self, repository_id: str) -> Optional[GitHubRepository]:
        return self.db.get(GitHubRepository, repository_id)

    def get_repositories(self, repository_ids: List[str]) -> List[GitHubRepository]:
        if not repository_ids:
            return []
        return self.db.query(GitHubRepository).filter(
            GitHubRepository.id.in_(repository_ids)
        ).all()

    def list_enabled_repositories(self, organization_id: str) -> List[GitHubRepository]:
        """Enabled repositories of the organization's enabled integrations."""
        return self.db.query(GitHubRepository).join(
            GitHubIntegration, GitHubRepository.integration_id == GitHubIntegration.id
        ).filter(
            GitHubIntegration.organization_id == organization_id,
            GitHubIntegration.enabled.is_(True),
            GitHubRepository.enabled.is_(True)
        ).order_by(GitHubRepository.created_at).all()

    def update_repository(self, repository_id: str, enabled: bool) -> GitHubRepository:
        repository = self.get_repository(repository_id)
        if not repository:
            raise IntegrationNotFoundError("Repository not found")
        repository.enabled = enabled
        self.db.commit()
        self.db.refresh(repository)
        return repository

    def find_repository_in_organization(
        self,
        organization_id: str,
        owner: str,
        repo: str
    ) -> Optional[GitHubRepository]:
        """Case-insensitive owner/repo lookup across an organization's integrations."""
        return self.db.query(GitHubRepository).join(
            GitHubIntegration, GitHubRepository.integration_id == GitHubIntegration.id
        ).filter(
            GitHubIntegration.organization_id == organization_id,
            func.lower(GitHubRepository.owner) == owner.lower(),
            func.lower(GitHubRepository.repo) == repo.lower()
        ).first()

    def get_token_for_repository(self, organization_id: str, owner: str, repo: str) -> Optional[str]:
        """Decrypted token of the organization's enabled integration that connected owner/repo, if any."""
        integration = self.db.query(GitHubIntegration).join(
            GitHubRepository, GitHubRepository.integration_id == GitHubIntegration.id
        ).filter(
            GitHubIntegration.organization_id == organization_id,
            GitHubIntegration.enabled.is_(True),
            GitHubIntegration.access_token.isnot(None),
            func.lower(GitHubRepository.owner) == owner.lower(),
            func.lower(GitHubRepository.repo) == repo.lower()
        ).first()

        return self.get_integration_token(integration) if integration else None

    def get_integration_token(self, integration: GitHubIntegration) -> Optional[str]:
        if not integration.access_token:
            return None
        return decrypt_token(integration.access_token)

    # =============================================================================
    # Repository Outputs
    # =============================================================================

    def get_output(self, output_id: str) -> Optional[RepositoryOutput]:
        return self.db.get(RepositoryOutput, output_id)

    def configure_output(
        self,
        repository_id: str,
        output_type: str,
        enabled: bool,
        config: Optional[Dict[str, Any]] = None
    ) -> RepositoryOutput:
        """Create or update the repository's output of this type."""
        output = self.db.query(RepositoryOutput).filter(
            RepositoryOutput.repository_id == repository_id,
            RepositoryOutput.output_type == output_type
        ).first()

        if not output:
            output = RepositoryOutput(repository_id=repository_id, output_type=output_type)
            self.db.add(output)

        output.enabled = enabled
        if config is not None:
            output.config = config

        self.db.commit()
        self.db.refresh(output)
        return output

    def toggle_output(self, output_id: str, enabled: bool) -> RepositoryOutput:
        output = self.get_output(output_id)
        if not output:
            raise IntegrationNotFoundError("Output not found")
        output.enabled = enabled
        self.db.commit()
        self.db.refresh(output)
        return output

    def build_webhook_url(self, repository: GitHubRepository) -> str:
        integration = repository.integration
        return (
            f"{get_app_url()}/api/webhooks/github/"
            f"{integration.organization_id}/{integration.id}/{repository.id}"
        )

    def _add_repository_row(
        self,
        integration: GitHubIntegration,
        owner: str,
        repo: str,
        outputs: List[Dict[str, Any]]
    ) -> GitHubRepository:
        repository = GitHubRepository(
            integration_id=integration.id,
            owner=owner,
            repo=repo,
            enabled=True
        )
        self.db.add(repository)
        self.db.flush()

        for output in outputs:
            self.db.add(RepositoryOutput(
                repository_id=repository.id,
                output_type=output["type"],
                enabled=output.get("enabled", False),
                config=output.get("config")
            ))
        return repository
