"""
notra API.

Organizations connect GitHub repositories, set their brand voice and get
content generated either through the editor chat or through stored triggers
(cron schedules and GitHub webhook events).
"""

import logging
import uuid
from contextlib import asynccontextmanager
from typing import Optional, List, Dict, Any

from fastapi import FastAPI, Request, HTTPException, Depends, BackgroundTasks, Query
from fastapi.responses import JSONResponse, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel
from sqlalchemy.orm import Session

from notra.config import LOG_LEVEL
from notra.db.database import get_db, init_db
from notra.orchestration.models import ChatRequest
from notra.triggers.models import OutputContentType, TriggerConfig, TriggerSourceType

logging.basicConfig(
    level=getattr(logging, LOG_LEVEL, logging.INFO),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

SUPPORTED_WEBHOOK_PROVIDERS = ("github",)
KNOWN_WEBHOOK_PROVIDERS = ("github", "linear", "slack")
NDJSON = "application/x-ndjson"


@asynccontextmanager
async def lifespan(app: FastAPI):
    init_db()
    logger.info("notra API started")
    yield
    logger.info("notra API stopped")


app = FastAPI(
    title="notra",
    description="Content automation from repository activity",
    version="0.1.0",
    lifespan=lifespan
)


class _Body(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CreateIntegrationBody(_Body):
    owner: str = Field(min_length=1)
    repo: str = Field(min_length=1)
    token: Optional[str] = None
    display_name: Optional[str] = None


class UpdateIntegrationBody(_Body):
    enabled: bool
    display_name: Optional[str] = None


class AddRepositoryBody(_Body):
    owner: str = Field(min_length=1)
    repo: str = Field(min_length=1)
    outputs: Optional[List[Dict[str, Any]]] = None


class UpdateRepositoryBody(_Body):
    enabled: bool


class BrandSettingsBody(_Body):
    company_name: Optional[str] = None
    company_description: Optional[str] = None
    tone_profile: Optional[str] = None
    custom_tone: Optional[str] = None
    custom_instructions: Optional[str] = None
    audience: Optional[str] = None
    website_url: Optional[str] = None


class AnalyzeBrandBody(_Body):
    url: str = Field(min_length=1)


class ConfigureOutputBody(_Body):
    output_type: OutputContentType
    enabled: bool
    config: Optional[Dict[str, Any]] = None


class UpdateOutputBody(_Body):
    enabled: bool


class UpdateContentBody(_Body):
    markdown: str


class EditContentBody(_Body):
    instruction: str = Field(min_length=1)
    current_markdown: str
    selected_text: Optional[str] = None


class ChangelogStreamBody(_Body):
    prompt: str = Field(min_length=1)


class ScheduleRunBody(_Body):
    trigger_id: str


# =============================================================================
# Serialization
# =============================================================================

def _repository_out(repository) -> Dict[str, Any]:
    return {
        "id": repository.id,
        "integration_id": repository.integration_id,
        "owner": repository.owner,
        "repo": repository.repo,
        "full_name": repository.full_name,
        "enabled": repository.enabled,
        "outputs": [_output_out(o) for o in repository.outputs],
        "created_at": repository.created_at.isoformat(),
    }


def _output_out(output) -> Dict[str, Any]:
    return {
        "id": output.id,
        "repository_id": output.repository_id,
        "type": output.output_type,
        "enabled": output.enabled,
        "config": output.config,
    }


def _integration_out(integration) -> Dict[str, Any]:
    # the stored token never leaves the service
    return {
        "id": integration.id,
        "type": "github",
        "organization_id": integration.organization_id,
        "display_name": integration.display_name,
        "enabled": integration.enabled,
        "has_token": bool(integration.access_token),
        "repositories": [_repository_out(r) for r in integration.repositories],
        "created_at": integration.created_at.isoformat(),
    }


def _brand_out(settings) -> Dict[str, Any]:
    from notra.db.content_service import BRAND_FIELDS
    data = {field: getattr(settings, field) for field in BRAND_FIELDS}
    data["organization_id"] = settings.organization_id
    data["updated_at"] = settings.updated_at.isoformat()
    return data


def _post_out(post) -> Dict[str, Any]:
    return {
        "id": post.id,
        "organization_id": post.organization_id,
        "title": post.title,
        "content": post.content,
        "markdown": post.markdown,
        "content_type": post.content_type,
        "source_trigger_id": post.source_trigger_id,
        "created_at": post.created_at.isoformat(),
    }


def _content_out(post) -> Dict[str, Any]:
    return {
        "id": post.id,
        "title": post.title,
        "content": post.content,
        "markdown": post.markdown,
        "content_type": post.content_type,
        "date": post.created_at.isoformat(),
    }


def _trigger_out(trigger) -> Dict[str, Any]:
    from notra.triggers.cron import build_cron_expression
    from notra.triggers.service import to_trigger_out

    out = to_trigger_out(trigger)
    data = out.model_dump(mode="json")
    data["cron_expression"] = build_cron_expression(out.source_config.cron)
    return data


def _owned_integration(db: Session, organization_id: str, integration_id: str):
    from notra.db.integration_service import IntegrationService

    integration = IntegrationService(db).get_integration(integration_id)
    if not integration or integration.organization_id != organization_id:
        raise HTTPException(status_code=404, detail="Integration not found")
    return integration


def _owned_repository(db: Session, organization_id: str, repository_id: str):
    from notra.db.integration_service import IntegrationService

    repository = IntegrationService(db).get_repository(repository_id)
    if not repository or repository.integration.organization_id != organization_id:
        raise HTTPException(status_code=404, detail="Repository not found")
    return repository


# =============================================================================
# Service
# =============================================================================

@app.get("/")
async def root():
    """API root - shows available endpoints."""
    return {
        "service": "notra",
        "version": "0.1.0",
        "docs": "/docs",
        "endpoints": {
            "health": "/health",
            "integrations": "/api/organizations/{organization_id}/integrations",
            "brand": "/api/organizations/{organization_id}/brand",
            "brand_analysis": "/api/organizations/{organization_id}/brand/analyze",
            "posts": "/api/organizations/{organization_id}/posts",
            "content": "/api/organizations/{organization_id}/content/{content_id}",
            "chat": "/api/organizations/{organization_id}/content/{content_id}/chat",
            "changelog": "/api/organizations/{organization_id}/workflows/ai/changelog",
            "schedules": "/api/organizations/{organization_id}/automation/schedules",
            "events": "/api/organizations/{organization_id}/automation/events",
            "webhook_logs": "/api/organizations/{organization_id}/webhook-logs",
            "webhooks": "/api/webhooks/{provider}/{organization_id}/{integration_id}/{repository_id}",
            "scheduler": "/api/workflows/schedule"
        }
    }


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "ok", "service": "notra"}


# =============================================================================
# Integrations
# =============================================================================

@app.post("/api/organizations/{organization_id}/integrations", status_code=201)
async def create_integration(
    organization_id: str,
    body: CreateIntegrationBody,
    db: Session = Depends(get_db)
):
    """Connect a GitHub repository after checking it can be read with the given token."""
    from notra.db.integration_service import IntegrationService, DuplicateRepositoryError
    from notra.tools.github import verify_repository_access

    owner, repo = body.owner.strip(), body.repo.strip()
    await verify_repository_access(owner, repo, body.token or None)

    try:
        integration = IntegrationService(db).create_github_integration(
            organization_id, owner, repo, display_name=body.display_name, token=body.token
        )
    except DuplicateRepositoryError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return _integration_out(integration)


@app.get("/api/organizations/{organization_id}/integrations")
async def list_integrations(organization_id: str, db: Session = Depends(get_db)):
    from notra.db.integration_service import IntegrationService

    integrations = IntegrationService(db).list_integrations(organization_id)
    return {"integrations": [_integration_out(i) for i in integrations]}


@app.get("/api/organizations/{organization_id}/integrations/{integration_id}")
async def get_integration(organization_id: str, integration_id: str, db: Session = Depends(get_db)):
    return _integration_out(_owned_integration(db, organization_id, integration_id))


@app.patch("/api/organizations/{organization_id}/integrations/{integration_id}")
async def update_integration(
    organization_id: str,
    integration_id: str,
    body: UpdateIntegrationBody,
    db: Session = Depends(get_db)
):
    from notra.db.integration_service import IntegrationService

    _owned_integration(db, organization_id, integration_id)
    integration = IntegrationService(db).update_integration(
        integration_id, body.enabled, display_name=body.display_name
    )
    return _integration_out(integration)


@app.delete("/api/organizations/{organization_id}/integrations/{integration_id}")
async def delete_integration(organization_id: str, integration_id: str, db: Session = Depends(get_db)):
    from notra.db.integration_service import IntegrationService

    _owned_integration(db, organization_id, integration_id)
    IntegrationService(db).delete_integration(integration_id)
    return {"success": True}


@app.post("/api/organizations/{organization_id}/integrations/{integration_id}/repositories", status_code=201)
async def add_repository(
    organization_id: str,
    integration_id: str,
    body: AddRepositoryBody,
    db: Session = Depends(get_db)
):
    from notra.db.integration_service import IntegrationService, DuplicateRepositoryError
    from notra.tools.github import verify_repository_access

    service = IntegrationService(db)
    integration = _owned_integration(db, organization_id, integration_id)
    owner, repo = body.owner.strip(), body.repo.strip()
    await verify_repository_access(owner, repo, service.get_integration_token(integration))

    try:
        repository = service.add_repository(integration_id, owner, repo, body.outputs)
    except DuplicateRepositoryError as e:
        raise HTTPException(status_code=409, detail=str(e))

    return _repository_out(repository)


@app.patch("/api/organizations/{organization_id}/repositories/{repository_id}")
async def update_repository(
    organization_id: str,
    repository_id: str,
    body: UpdateRepositoryBody,
    db: Session = Depends(get_db)
):
    from notra.db.integration_service import IntegrationService

    _owned_repository(db, organization_id, repository_id)
    repository = IntegrationService(db).update_repository(repository_id, body.enabled)
    return _repository_out(repository)


@app.get("/api/organizations/{organization_id}/repositories/{repository_id}/webhook")
async def get_repository_webhook(organization_id: str, repository_id: str, db: Session = Depends(get_db)):
    """URL to paste into the repository's GitHub webhook settings."""
    from notra.db.integration_service import IntegrationService

    repository = _owned_repository(db, organization_id, repository_id)
    return {
        "repository_id": repository.id,
        "webhook_url": IntegrationService(db).build_webhook_url(repository),
        "content_type": "application/json",
        "events": ["release", "push", "star"]
    }


@app.post("/api/organizations/{organization_id}/repositories/{repository_id}/outputs")
async def configure_repository_output(
    organization_id: str,
    repository_id: str,
    body: ConfigureOutputBody,
    db: Session = Depends(get_db)
):
    """Enable, disable or configure one output type of a repository."""
    from notra.db.integration_service import IntegrationService

    _owned_repository(db, organization_id, repository_id)
    output = IntegrationService(db).configure_output(
        repository_id, body.output_type.value, body.enabled, body.config
    )
    return _output_out(output)


@app.patch("/api/organizations/{organization_id}/outputs/{output_id}")
async def update_output(
    organization_id: str,
    output_id: str,
    body: UpdateOutputBody,
    db: Session = Depends(get_db)
):
    from notra.db.integration_service import IntegrationService

    service = IntegrationService(db)
    output = service.get_output(output_id)
    if not output or output.repository.integration.organization_id != organization_id:
        raise HTTPException(status_code=404, detail="Output not found")

    return _output_out(service.toggle_output(output_id, body.enabled))


# =============================================================================
# Brand Settings & Posts
# =============================================================================

@app.get("/api/organizations/{organization_id}/brand")
async def get_brand_settings(organization_id: str, db: Session = Depends(get_db)):
    from notra.db.content_service import ContentService

    settings = ContentService(db).get_brand_settings(organization_id)
    return {"brand_settings": _brand_out(settings) if settings else None}


@app.put("/api/organizations/{organization_id}/brand")
async def update_brand_settings(
    organization_id: str,
    body: BrandSettingsBody,
    db: Session = Depends(get_db)
):
    from notra.db.content_service import ContentService
    from notra.prompts.changelog import is_valid_tone_profile

    values = body.model_dump(exclude_unset=True)
    if values.get("tone_profile") and not is_valid_tone_profile(values["tone_profile"]):
        raise HTTPException(status_code=400, detail=f"Invalid tone profile: {values['tone_profile']}")

    settings = ContentService(db).upsert_brand_settings(organization_id, values)
    return {"brand_settings": _brand_out(settings)}


@app.post("/api/organizations/{organization_id}/brand/analyze")
async def analyze_brand(
    organization_id: str,
    body: AnalyzeBrandBody,
    background_tasks: BackgroundTasks
):
    """Start a website brand analysis; poll /brand/progress for its state."""
    from notra.tools.website import is_valid_url
    from notra.workflows import analyze_brand_safely

    url = body.url.strip()
    if not is_valid_url(url):
        raise HTTPException(status_code=400, detail="Please enter a valid URL")

    background_tasks.add_task(analyze_brand_safely, organization_id, url)
    logger.info(f"Brand analysis queued for org {organization_id} ({url})")
    return {"success": True, "message": "Brand analysis started"}


@app.get("/api/organizations/{organization_id}/brand/progress")
async def get_brand_progress(organization_id: str, db: Session = Depends(get_db)):
    from notra.db.content_service import ContentService

    return {"progress": ContentService(db).get_brand_progress(organization_id)}


@app.get("/api/organizations/{organization_id}/posts")
async def list_posts(organization_id: str, limit: int = Query(50, ge=1, le=200), db: Session = Depends(get_db)):
    from notra.db.content_service import ContentService

    posts = ContentService(db).list_posts(organization_id, limit=limit)
    return {"posts": [_post_out(p) for p in posts]}


@app.get("/api/organizations/{organization_id}/posts/{post_id}")
async def get_post(organization_id: str, post_id: str, db: Session = Depends(get_db)):
    from notra.db.content_service import ContentService

    post = ContentService(db).get_post(organization_id, post_id)
    if not post:
        raise HTTPException(status_code=404, detail="Post not found")
    return _post_out(post)


@app.get("/api/organizations/{organization_id}/content/{content_id}")
async def get_content(organization_id: str, content_id: str, db: Session = Depends(get_db)):
    from notra.db.content_service import ContentService

    post = ContentService(db).get_post(organization_id, content_id)
    if not post:
        raise HTTPException(status_code=404, detail="Content not found")
    return {"content": _content_out(post)}


@app.patch("/api/organizations/{organization_id}/content/{content_id}")
async def update_content(
    organization_id: str,
    content_id: str,
    body: UpdateContentBody,
    db: Session = Depends(get_db)
):
    """Save edited markdown; the title follows its first "# " heading."""
    from notra.db.content_service import ContentService

    post = ContentService(db).update_post_markdown(organization_id, content_id, body.markdown)
    if not post:
        raise HTTPException(status_code=404, detail="Content not found")
    return {"success": True, "content": _content_out(post)}


@app.delete("/api/organizations/{organization_id}/content/{content_id}")
async def delete_content(organization_id: str, content_id: str, db: Session = Depends(get_db)):
    from notra.db.content_service import ContentService

    if not ContentService(db).delete_post(organization_id, content_id):
        raise HTTPException(status_code=404, detail="Content not found")
    return {"success": True}


# =============================================================================
# AI Chat & Workflows
# =============================================================================

@app.post("/api/organizations/{organization_id}/content/{content_id}/chat")
async def content_chat(
    organization_id: str,
    content_id: str,
    body: ChatRequest,
    db: Session = Depends(get_db)
):
    """Stream one editor chat turn as newline-delimited JSON events."""
    from notra.orchestration import orchestrate_chat

    try:
        result = await orchestrate_chat(
            db,
            organization_id,
            body.messages,
            body.current_markdown,
            selection=body.selection,
            context=body.context
        )
    except Exception as e:
        logger.error(f"Chat failed for content {content_id} (org {organization_id}): {e}", exc_info=True)
        return JSONResponse(content={"error": "Failed to process chat request"}, status_code=500)

    return StreamingResponse(result.stream, media_type=NDJSON)


@app.post("/api/organizations/{organization_id}/content/{content_id}/edit")
async def edit_content(
    organization_id: str,
    content_id: str,
    body: EditContentBody,
    db: Session = Depends(get_db)
):
    """Apply one instruction to the document and return the edited markdown."""
    from notra.agents.chat import edit_content as run_edit
    from notra.db.content_service import ContentService

    brand = ContentService(db).get_brand_settings(organization_id)
    try:
        markdown = await run_edit(
            organization_id,
            body.instruction,
            body.current_markdown,
            selected_text=body.selected_text,
            brand=brand
        )
    except Exception as e:
        logger.error(f"Edit failed for content {content_id} (org {organization_id}): {e}", exc_info=True)
        return JSONResponse(content={"error": "Failed to edit content"}, status_code=500)

    return {"markdown": markdown}


@app.post("/api/organizations/{organization_id}/workflows/ai/changelog")
async def changelog_workflow(
    organization_id: str,
    body: ChangelogStreamBody,
    db: Session = Depends(get_db)
):
    """Stream a changelog draft written in the organization's brand voice."""
    from notra.agents.changelog import ChangelogOptions, stream_changelog
    from notra.db.content_service import ContentService
    from notra.db.integration_service import IntegrationService
    from notra.orchestration.models import RepoContext, StreamEvent

    brand = ContentService(db).get_brand_settings(organization_id)
    repositories = IntegrationService(db).list_enabled_repositories(organization_id)
    options = ChangelogOptions(
        organization_id=organization_id,
        tone=brand.tone_profile if brand else None,
        company_name=brand.company_name if brand else None,
        company_description=brand.company_description if brand else None,
        audience=brand.audience if brand else None,
        custom_instructions=brand.custom_instructions if brand else None,
        repositories=[RepoContext(owner=r.owner, repo=r.repo) for r in repositories]
    )

    async def events():
        try:
            async for chunk in stream_changelog(options, body.prompt):
                yield StreamEvent(type="text-delta", data={"delta": chunk}).to_line()
        except Exception as e:
            logger.error(f"Changelog stream failed (org {organization_id}): {e}", exc_info=True)
            yield StreamEvent(type="error", data={"error": str(e)}).to_line()
        yield StreamEvent(type="finish").to_line()

    return StreamingResponse(events(), media_type=NDJSON)


# =============================================================================
# Automation (schedules and events)
# =============================================================================

def _validate_trigger_config(
    db: Session,
    organization_id: str,
    config: TriggerConfig,
    source_type: TriggerSourceType
):
    from notra.db.integration_service import IntegrationService

    if config.source_type != source_type:
        raise HTTPException(status_code=400, detail=f"Source type must be {source_type.value}")
    if source_type == TriggerSourceType.CRON and config.source_config.cron is None:
        raise HTTPException(status_code=400, detail="Cron configuration is required")
    if source_type == TriggerSourceType.GITHUB_WEBHOOK and not config.source_config.event_types:
        raise HTTPException(status_code=400, detail="At least one event type is required")

    repository_ids = set(config.targets.repository_ids)
    repositories = IntegrationService(db).get_repositories(list(repository_ids))
    owned = {r.id for r in repositories if r.integration.organization_id == organization_id}
    if owned != repository_ids:
        raise HTTPException(status_code=400, detail="Invalid repository targets")


def _list_triggers(db: Session, organization_id: str, source_type: TriggerSourceType):
    from notra.triggers.service import TriggerService

    triggers = TriggerService(db).list_triggers(organization_id, source_type)
    return {"triggers": [_trigger_out(t) for t in triggers]}


def _create_trigger(db: Session, organization_id: str, config: TriggerConfig, source_type: TriggerSourceType):
    from notra.triggers.service import TriggerService, DuplicateTriggerError

    _validate_trigger_config(db, organization_id, config, source_type)
    try:
        trigger = TriggerService(db).create_trigger(organization_id, config)
    except DuplicateTriggerError as e:
        return JSONResponse(content={"error": str(e), "code": e.code}, status_code=409)
    return JSONResponse(content={"trigger": _trigger_out(trigger)}, status_code=201)


def _update_trigger(
    db: Session,
    organization_id: str,
    trigger_id: str,
    config: TriggerConfig,
    source_type: TriggerSourceType,
    not_found: str
):
    from notra.triggers.service import TriggerService, DuplicateTriggerError, TriggerNotFoundError

    _validate_trigger_config(db, organization_id, config, source_type)
    try:
        trigger = TriggerService(db).update_trigger(organization_id, trigger_id, config)
    except DuplicateTriggerError as e:
        return JSONResponse(content={"error": str(e), "code": e.code}, status_code=409)
    except TriggerNotFoundError:
        raise HTTPException(status_code=404, detail=not_found)
    return {"trigger": _trigger_out(trigger)}


def _delete_trigger(db: Session, organization_id: str, trigger_id: str):
    from notra.triggers.service import TriggerService

    TriggerService(db).delete_trigger(organization_id, trigger_id)
    return {"success": True}


@app.get("/api/organizations/{organization_id}/automation/schedules")
async def list_schedules(organization_id: str, db: Session = Depends(get_db)):
    return _list_triggers(db, organization_id, TriggerSourceType.CRON)


@app.post("/api/organizations/{organization_id}/automation/schedules")
async def create_schedule(organization_id: str, body: TriggerConfig, db: Session = Depends(get_db)):
    return _create_trigger(db, organization_id, body, TriggerSourceType.CRON)


@app.patch("/api/organizations/{organization_id}/automation/schedules")
async def update_schedule(
    organization_id: str,
    body: TriggerConfig,
    trigger_id: str = Query(..., alias="triggerId"),
    db: Session = Depends(get_db)
):
    return _update_trigger(db, organization_id, trigger_id, body, TriggerSourceType.CRON, "Schedule not found")


@app.delete("/api/organizations/{organization_id}/automation/schedules")
async def delete_schedule(
    organization_id: str,
    trigger_id: str = Query(..., alias="triggerId"),
    db: Session = Depends(get_db)
):
    return _delete_trigger(db, organization_id, trigger_id)


@app.post("/api/organizations/{organization_id}/automation/schedules/run")
async def run_schedule(
    organization_id: str,
    background_tasks: BackgroundTasks,
    trigger_id: str = Query(..., alias="triggerId"),
    db: Session = Depends(get_db)
):
    """Run a schedule now; generation happens in the background."""
    from notra.triggers.service import TriggerService
    from notra.webhooks.logs import append_webhook_log
    from notra.workflows import run_trigger_safely

    trigger = TriggerService(db).get_trigger(organization_id, trigger_id)
    if not trigger or trigger.source_type != TriggerSourceType.CRON.value:
        raise HTTPException(status_code=404, detail="Schedule not found")
    if not trigger.enabled:
        raise HTTPException(status_code=400, detail="Cannot run a disabled schedule")

    workflow_run_id = f"run_{uuid.uuid4().hex[:12]}"
    append_webhook_log(
        db,
        organization_id=organization_id,
        integration_id=trigger.id,
        integration_type="manual",
        title="Manual schedule run",
        status="success",
        status_code=202,
        reference_id=workflow_run_id,
        payload={"trigger_id": trigger.id, "output_type": trigger.output_type}
    )
    background_tasks.add_task(run_trigger_safely, trigger.id)

    logger.info(f"Manual run {workflow_run_id} queued for trigger {trigger.id}")
    return {"success": True, "workflow_run_id": workflow_run_id}


@app.get("/api/organizations/{organization_id}/automation/events")
async def list_events(organization_id: str, db: Session = Depends(get_db)):
    return _list_triggers(db, organization_id, TriggerSourceType.GITHUB_WEBHOOK)


@app.post("/api/organizations/{organization_id}/automation/events")
async def create_event(organization_id: str, body: TriggerConfig, db: Session = Depends(get_db)):
    return _create_trigger(db, organization_id, body, TriggerSourceType.GITHUB_WEBHOOK)


@app.patch("/api/organizations/{organization_id}/automation/events")
async def update_event(
    organization_id: str,
    body: TriggerConfig,
    trigger_id: str = Query(..., alias="triggerId"),
    db: Session = Depends(get_db)
):
    return _update_trigger(
        db, organization_id, trigger_id, body, TriggerSourceType.GITHUB_WEBHOOK, "Event trigger not found"
    )


@app.delete("/api/organizations/{organization_id}/automation/events")
async def delete_event(
    organization_id: str,
    trigger_id: str = Query(..., alias="triggerId"),
    db: Session = Depends(get_db)
):
    return _delete_trigger(db, organization_id, trigger_id)


@app.post("/api/workflows/schedule")
async def scheduled_workflow(body: ScheduleRunBody):
    """Entry point for the external scheduler; runs the trigger to completion."""
    from notra.workflows import run_trigger

    try:
        result = await run_trigger(body.trigger_id)
    except Exception as e:
        logger.error(f"Scheduled workflow failed for trigger {body.trigger_id}: {e}", exc_info=True)
        return JSONResponse(content={"error": str(e), "trigger_id": body.trigger_id}, status_code=500)
    return result.model_dump()


# =============================================================================
# Webhooks
# =============================================================================

@app.post("/api/webhooks/{provider}/{organization_id}/{integration_id}/{repository_id}")
async def receive_webhook(
    provider: str,
    organization_id: str,
    integration_id: str,
    repository_id: str,
    request: Request,
    background_tasks: BackgroundTasks,
    db: Session = Depends(get_db)
):
    """Handle an incoming webhook for one connected repository."""
    from notra.db.integration_service import IntegrationService
    from notra.webhooks.github import handle_github_webhook
    from notra.webhooks.models import WebhookContext
    from notra.workflows import run_trigger_safely

    if provider not in SUPPORTED_WEBHOOK_PROVIDERS:
        message = (
            f"Webhooks for {provider} are not supported yet"
            if provider in KNOWN_WEBHOOK_PROVIDERS else f"Unknown webhook provider: {provider}"
        )
        return JSONResponse(content={"error": message}, status_code=501)

    service = IntegrationService(db)
    integration = service.get_integration(integration_id)
    if not integration:
        return JSONResponse(content={"error": "Integration not found"}, status_code=404)
    if integration.organization_id != organization_id:
        return JSONResponse(content={"error": "Integration does not belong to organization"}, status_code=403)
    if not integration.enabled:
        return JSONResponse(content={"error": "Integration is disabled"}, status_code=403)

    repository = service.get_repository(repository_id)
    if not repository:
        return JSONResponse(content={"error": "Repository not found"}, status_code=404)
    if repository.integration_id != integration.id:
        return JSONResponse(content={"error": "Repository does not belong to integration"}, status_code=403)

    try:
        raw_body = (await request.body()).decode("utf-8", errors="replace")
        context = WebhookContext(
            provider=provider,
            organization_id=organization_id,
            integration_id=integration_id,
            repository_id=repository_id,
            headers={k.lower(): v for k, v in request.headers.items()},
            raw_body=raw_body
        )
        result = await handle_github_webhook(db, context)
    except Exception as e:
        logger.error(f"{provider} webhook error: {e}", exc_info=True)
        return JSONResponse(content={"error": "Internal server error"}, status_code=500)

    if not result.success:
        return JSONResponse(content={"error": result.message}, status_code=400)

    for trigger_id in (result.data or {}).get("trigger_ids", []):
        background_tasks.add_task(run_trigger_safely, trigger_id)

    return {"success": True, "message": result.message, "data": result.data}


@app.get("/api/organizations/{organization_id}/webhook-logs")
async def get_webhook_logs(
    organization_id: str,
    page: Optional[int] = Query(None),
    page_size: Optional[int] = Query(None, alias="pageSize"),
    integration_type: str = Query("github", alias="integrationType"),
    integration_id: Optional[str] = Query(None, alias="integrationId"),
    db: Session = Depends(get_db)
):
    """Paginated webhook logs; integrationId=all (or none) lists every log of the organization."""
    from notra.webhooks.logs import clamp_pagination, list_webhook_logs, paginate_logs

    if integration_id == "all":
        integration_id = None

    page, page_size = clamp_pagination(page, page_size)
    logs = list_webhook_logs(db, organization_id, integration_type, integration_id)
    return paginate_logs(logs, page, page_size).model_dump()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
