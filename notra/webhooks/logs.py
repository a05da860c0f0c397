"""
Webhook log storage.

Every incoming webhook (and manual trigger run) leaves a log row. Rows expire
after their retention window and at most LOG_LIMIT rows are kept per
organization, integration type and integration.
"""

import logging
import math
import uuid
from datetime import timedelta
from typing import Optional, List, Dict, Any

from pydantic import BaseModel
from sqlalchemy import desc
from sqlalchemy.orm import Session

from notra.db.models import WebhookLog, utcnow

logger = logging.getLogger(__name__)

LOG_LIMIT = 200
PAGE_SIZE_DEFAULT = 10
PAGE_SIZE_MAX = 100
RETENTION_DAYS = (7, 30)


class WebhookLogOut(BaseModel):
    """Log entry as returned by the API."""
    id: str
    reference_id: Optional[str] = None
    title: str
    integration_type: str
    integration_id: str
    direction: str
    status: str
    status_code: Optional[int] = None
    error_message: Optional[str] = None
    created_at: str
    payload: Optional[Dict[str, Any]] = None


class Pagination(BaseModel):
    page: int
    page_size: int
    total_count: int
    total_pages: int


class LogsResponse(BaseModel):
    logs: List[WebhookLogOut]
    pagination: Pagination


def _to_out(log: WebhookLog) -> WebhookLogOut:
    return WebhookLogOut(
        id=log.id,
        reference_id=log.reference_id,
        title=log.title,
        integration_type=log.integration_type,
        integration_id=log.integration_id,
        direction=log.direction,
        status=log.status,
        status_code=log.status_code,
        error_message=log.error_message,
        created_at=log.created_at.isoformat() + "Z",
        payload=log.payload
    )


def append_webhook_log(
    db: Session,
    organization_id: str,
    integration_id: str,
    integration_type: str,
    title: str,
    status: str,
    status_code: Optional[int],
    reference_id: Optional[str] = None,
    error_message: Optional[str] = None,
    payload: Optional[Dict[str, Any]] = None,
    retention_days: int = 30
) -> WebhookLogOut:
    if retention_days not in RETENTION_DAYS:
        raise ValueError(f"retention_days must be one of {RETENTION_DAYS}")

    now = utcnow()
    log = WebhookLog(
        id=f"log_{uuid.uuid4().hex[:8]}",
        organization_id=organization_id,
        integration_type=integration_type,
        integration_id=integration_id,
        reference_id=reference_id,
        title=title,
        direction="incoming",
        status=status,
        status_code=status_code,
        error_message=error_message,
        payload=payload,
        created_at=now,
        expires_at=now + timedelta(days=retention_days)
    )
    db.add(log)
    db.flush()

    _trim(db, organization_id, integration_type, integration_id)
    db.commit()

    logger.info(f"Webhook log {log.id} [{status}] {title} (org {organization_id})")
    return _to_out(log)


def _trim(db: Session, organization_id: str, integration_type: str, integration_id: str):
    """Drop expired rows and everything beyond the newest LOG_LIMIT for one integration."""
    scope = db.query(WebhookLog).filter(
        WebhookLog.organization_id == organization_id,
        WebhookLog.integration_type == integration_type,
        WebhookLog.integration_id == integration_id
    )

    scope.filter(WebhookLog.expires_at <= utcnow()).delete(synchronize_session=False)

    overflow = [
        row.id for row in scope.order_by(desc(WebhookLog.created_at)).offset(LOG_LIMIT).all()
    ]
    if overflow:
        db.query(WebhookLog).filter(WebhookLog.id.in_(overflow)).delete(synchronize_session=False)


def list_webhook_logs(
    db: Session,
    organization_id: str,
    integration_type: str = "github",
    integration_id: Optional[str] = None
) -> List[WebhookLogOut]:
    """Newest unexpired logs; all of the organization's logs when no integration is given."""
    query = db.query(WebhookLog).filter(
        WebhookLog.organization_id == organization_id,
        WebhookLog.expires_at > utcnow()
    )
    if integration_id:
        query = query.filter(
            WebhookLog.integration_type == integration_type,
            WebhookLog.integration_id == integration_id
        )

    rows = query.order_by(desc(WebhookLog.created_at)).limit(LOG_LIMIT).all()
    return [_to_out(row) for row in rows]


def clamp_pagination(page: Optional[int], page_size: Optional[int]) -> tuple[int, int]:
    page = max(1, page if page is not None else 1)
    if page_size is None:
        page_size = PAGE_SIZE_DEFAULT
    page_size = min(PAGE_SIZE_MAX, max(1, page_size))
    return page, page_size


def paginate_logs(logs: List[WebhookLogOut], page: int, page_size: int) -> LogsResponse:
    start = (page - 1) * page_size
    return LogsResponse(
        logs=logs[start:start + page_size],
        pagination=Pagination(
            page=page,
            page_size=page_size,
            total_count=len(logs),
            total_pages=max(1, math.ceil(len(logs) / page_size))
        )
    )
