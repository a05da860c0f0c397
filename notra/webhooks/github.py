"""
GitHub webhook handler.

Filters release, push and star events down to the ones worth acting on,
records org memories for them, and finds the event triggers they should run.
Signature verification is expected to happen before requests reach notra.
"""

import json
import logging
import uuid
from typing import Dict, Any, Optional

from sqlalchemy.orm import Session

from notra.webhooks.logs import append_webhook_log
from notra.webhooks.models import ProcessedEvent, WebhookContext, WebhookResult

logger = logging.getLogger(__name__)

STAR_MILESTONES = [10, 25, 50, 100, 250, 500, 1000, 2500, 5000, 10000]
RELEASE_ACTIONS = ("published", "created", "edited", "prereleased")
MEMORY_MODEL = "google/gemini-3-flash-preview"


def is_star_milestone(stars: Optional[int]) -> bool:
    return bool(stars) and stars in STAR_MILESTONES


def process_release_event(action: str, payload: Dict[str, Any]) -> Optional[ProcessedEvent]:
    if action not in RELEASE_ACTIONS:
        return None

    release = payload.get("release")
    if not release:
        return None

    # drafts only count when they were just created
    if release.get("draft") and action != "created":
        return None

    return ProcessedEvent(
        type="release",
        action=action,
        data={
            "tag_name": release.get("tag_name"),
            "name": release.get("name"),
            "body": release.get("body"),
            "prerelease": release.get("prerelease", False),
            "draft": release.get("draft", False),
            "published_at": release.get("published_at"),
            "url": release.get("html_url"),
        }
    )


def process_push_event(payload: Dict[str, Any]) -> Optional[ProcessedEvent]:
    ref = payload.get("ref")
    default_branch = (payload.get("repository") or {}).get("default_branch")
    commits = payload.get("commits") or []

    if not ref or not default_branch:
        return None
    if ref != f"refs/heads/{default_branch}":
        return None
    if not commits:
        return None

    head_commit = payload.get("head_commit")
    return ProcessedEvent(
        type="push",
        action="pushed",
        data={
            "ref": ref,
            "branch": default_branch,
            "commits": [
                {
                    "id": c.get("id"),
                    "message": c.get("message"),
                    "author": c.get("author"),
                    "timestamp": c.get("timestamp"),
                    "url": c.get("url"),
                }
                for c in commits
            ],
            "head_commit": (
                {"id": head_commit.get("id"), "message": head_commit.get("message")}
                if head_commit else None
            ),
        }
    )


def process_star_event(action: str, payload: Dict[str, Any]) -> Optional[ProcessedEvent]:
    if action != "created":
        return None

    stargazers_count = (payload.get("repository") or {}).get("stargazers_count")
    if stargazers_count is None:
        stargazers_count = payload.get("star_count")

    return ProcessedEvent(
        type="star",
        action="created",
        data={
            "starred_at": payload.get("starred_at"),
            "user": (payload.get("sender") or {}).get("login"),
            "stargazers_count": stargazers_count,
        }
    )


def should_persist_memory(event: ProcessedEvent) -> bool:
    if event.type in ("release", "push"):
        return True
    return event.type == "star" and is_star_milestone(event.data.get("stargazers_count"))


async def create_memory_entry(
    organization_id: str,
    event: ProcessedEvent,
    repository: str,
    custom_id: str
) -> bool:
    """Summarize the event with a small model and store it as an org memory."""
    from notra.ai.llm import generate_text
    from notra.ai.memory import add_memory
    from notra.config import get_supermemory_api_key
    from notra.prompts.webhook_memory import get_github_webhook_memory_prompt

    if not get_supermemory_api_key():
        return False

    prompt = get_github_webhook_memory_prompt(event.type, repository, event.action, event.data)
    text = (await generate_text(MEMORY_MODEL, prompt["system"], prompt["user"])).strip()
    if not text:
        return False

    return await add_memory(
        organization_id,
        text,
        custom_id=custom_id,
        metadata={"source": "github_webhook", "eventType": event.type, "repository": repository}
    )


async def handle_github_webhook(db: Session, context: WebhookContext) -> WebhookResult:
    """
    Handle one GitHub delivery.

    Every outcome is written to the webhook log. Successful results for
    processed events carry the ids of the event triggers that should run in
    data["trigger_ids"].
    """
    from notra.triggers.service import TriggerService

    event = context.header("x-github-event")
    delivery = context.header("x-github-delivery")

    def log(title: str, status: str, status_code: int, **kwargs):
        append_webhook_log(
            db,
            organization_id=context.organization_id,
            integration_id=context.integration_id,
            integration_type="github",
            title=title,
            status=status,
            status_code=status_code,
            reference_id=delivery,
            **kwargs
        )

    if not event:
        log(
            "Missing webhook event header", "failed", 400,
            error_message="Missing X-GitHub-Event header"
        )
        return WebhookResult(success=False, message="Missing X-GitHub-Event header")

    if event == "ping":
        log("Webhook ping received", "success", 200, payload={"event": "ping"})
        return WebhookResult(
            success=True,
            message="Pong! Webhook configured successfully",
            data={"event": "ping", "delivery": delivery}
        )

    try:
        payload = json.loads(context.raw_body)
        if not isinstance(payload, dict):
            raise ValueError("payload is not an object")
    except ValueError:
        log("Invalid webhook payload", "failed", 400, error_message="Invalid JSON payload")
        return WebhookResult(success=False, message="Invalid JSON payload")

    action = payload.get("action") or ""

    if event == "release":
        processed = process_release_event(action, payload)
    elif event == "push":
        processed = process_push_event(payload)
    elif event == "star":
        processed = process_star_event(action, payload)
    else:
        log(
            f"Ignored {event} event", "success", 200,
            payload={"event": event, "action": action, "ignored": True}
        )
        return WebhookResult(
            success=True,
            message=f"Event type '{event}' is not processed",
            data={"event": event, "action": action, "ignored": True}
        )

    if processed is None:
        log(
            f"Filtered {event} event", "success", 200,
            payload={"event": event, "action": action, "filtered": True}
        )
        return WebhookResult(
            success=True,
            message=f"Event '{event}' with action '{action}' was filtered out",
            data={"event": event, "action": action, "filtered": True}
        )

    repository = payload.get("repository") or {}
    repository_name = repository.get("full_name") or "unknown"

    if should_persist_memory(processed):
        custom_id = f"github:{context.repository_id}:{delivery or uuid.uuid4()}"
        try:
            await create_memory_entry(context.organization_id, processed, repository_name, custom_id)
        except Exception as e:
            logger.error(f"Failed to store memory {custom_id}: {e}", exc_info=True)

    triggers = TriggerService(db).find_event_triggers(
        context.organization_id, context.repository_id, processed.type
    )
    trigger_ids = [t.id for t in triggers]
    if trigger_ids:
        logger.info(f"{processed.type} event on {repository_name} matches triggers {trigger_ids}")

    log(
        f"Processed {processed.type} event", "success", 200,
        payload={"event": event, "action": processed.action, "data": processed.data}
    )

    return WebhookResult(
        success=True,
        message=f"Processed {processed.type} event ({processed.action})",
        data={
            "event": event,
            "delivery": delivery,
            "processed": processed.model_dump(),
            "repository": {"id": repository.get("id"), "full_name": repository.get("full_name")},
            "trigger_ids": trigger_ids,
        }
    )
