"""콘텐츠 이벤트 웹훅 필터링과 전송 서비스입니다.

이벤트/출처/컬렉션 조건에 맞는 활성 웹훅을 골라 페이로드를 만들고,
httpx로 한 번씩 동기 전송한 뒤 결과를 WebhookLog에 남깁니다. 전송 실패는 로그만 남깁니다.
"""

import hashlib
import hmac
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

import httpx
from fastapi import HTTPException
from sqlalchemy.orm import Session

from headless_cms.config import settings
from headless_cms.models.content import ContentEntry
from headless_cms.models.project import Project
from headless_cms.models.webhook import Webhook, WebhookLog
from headless_cms.schemas.webhook import WebhookCreate
from headless_cms.services.entry_serializer import EntrySerializer

logger = logging.getLogger(__name__)

CONTENT_EVENTS = (
    "content.created",
    "content.updated",
    "content.published",
    "content.unpublished",
    "content.trashed",
    "content.deleted",
)
EVENTS_WITH_ENTRY = {"content.created", "content.updated", "content.published", "content.unpublished"}
WEBHOOK_SOURCES = ("cms", "api")
SIGNATURE_HEADER = "X-Webhook-Signature"


def _as_list(value: Any) -> list:
    return list(value) if isinstance(value, (list, tuple)) else []


def webhook_matches(webhook: Webhook, event_name: str, source: str, collection_id: Optional[int]) -> bool:
    if not webhook.status:
        return False
    if event_name not in _as_list(webhook.events):
        return False
    if source not in _as_list(webhook.sources):
        return False
    collection_ids = {int(value) for value in _as_list(webhook.collection_ids)}
    if not collection_ids:
        return True
    return collection_id is not None and int(collection_id) in collection_ids


def matching_webhooks(
    db: Session,
    project: Project,
    event_name: str,
    source: str,
    collection_id: Optional[int],
) -> List[Webhook]:
    rows = (
        db.query(Webhook)
        .filter(Webhook.project_id == project.project_id, Webhook.status == True)  # noqa: E712
        .order_by(Webhook.webhook_id.asc())
        .all()
    )
    return [row for row in rows if webhook_matches(row, event_name, source, collection_id)]


def build_payload(project: Project, entry: ContentEntry, event_name: str, serializer=None) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "event": event_name,
        "project_uuid": project.uuid,
        "collection_id": entry.collection_id,
        "content_id": entry.entry_id,
    }
    if event_name in EVENTS_WITH_ENTRY and serializer is not None:
        payload["content_entry"] = serializer.serialize(entry, include_timestamps=True)
    return payload


def sign_body(secret: Optional[str], body: bytes) -> Optional[str]:
    if not secret:
        return None
    return hmac.new(secret.encode("utf-8"), body, hashlib.sha256).hexdigest()


def deliver(db: Session, webhook: Webhook, project_uuid: str, payload: Dict[str, Any]) -> WebhookLog:
    body = json.dumps(payload, ensure_ascii=False, default=str).encode("utf-8")
    headers = {"Content-Type": "application/json"}
    signature = sign_body(webhook.secret, body)
    if signature:
        headers[SIGNATURE_HEADER] = signature

    try:
        response = httpx.post(
            webhook.url,
            content=body,
            headers=headers,
            timeout=settings.WEBHOOK_TIMEOUT_SECONDS,
        )
        status_text = str(response.status_code)
        response_text = response.text
        logger.info("[webhook] %s -> %s (%s)", payload.get("event"), webhook.url, status_text)
    except httpx.HTTPError as exc:
        status_text = "error"
        response_text = str(exc)
        logger.warning("[webhook] delivery to %s failed: %s", webhook.url, exc)

    log = WebhookLog(
        project_uuid=project_uuid,
        action=str(payload.get("event")),
        url=webhook.url,
        status=status_text,
        request=payload,
        response=response_text,
    )
    webhook.logs.append(log)
    db.commit()
    return log


def prepare_content_event(
    db: Session,
    project: Project,
    entry: ContentEntry,
    event_name: str,
    source: str = "cms",
    serializer=None,
) -> List[Tuple[Webhook, Dict[str, Any]]]:
    """대상 웹훅과 페이로드 목록을 만듭니다. 삭제 전에 호출하면 삭제 후에도 전송할 수 있습니다."""
    if not settings.WEBHOOK_ENABLED:
        return []
    if event_name not in CONTENT_EVENTS:
        raise ValueError(f"unknown content event: {event_name}")

    webhooks = matching_webhooks(db, project, event_name, source, entry.collection_id)
    if not webhooks:
        return []
    if serializer is None:
        serializer = EntrySerializer(db)
    payload = build_payload(project, entry, event_name, serializer)
    return [(webhook, payload) for webhook in webhooks]


def deliver_all(db: Session, project_uuid: str, prepared: List[Tuple[Webhook, Dict[str, Any]]]) -> List[Dict[str, Any]]:
    payloads = []
    for webhook, payload in prepared:
        deliver(db, webhook, project_uuid, payload)
        payloads.append(payload)
    return payloads


def dispatch_content_event(
    db: Session,
    project: Project,
    entry: ContentEntry,
    event_name: str,
    source: str = "cms",
) -> List[Dict[str, Any]]:
    prepared = prepare_content_event(db, project, entry, event_name, source=source)
    return deliver_all(db, project.uuid, prepared)


# ---------------------------------------------------------------------------
# management
# ---------------------------------------------------------------------------

def list_webhooks(db: Session, project: Project) -> List[Webhook]:
    return (
        db.query(Webhook)
        .filter(Webhook.project_id == project.project_id)
        .order_by(Webhook.webhook_id.asc())
        .all()
    )


def create_webhook(db: Session, project: Project, data: WebhookCreate, current_user=None) -> Webhook:
    unknown_events = [name for name in data.events if name not in CONTENT_EVENTS]
    if unknown_events:
        raise HTTPException(status_code=400, detail=f"지원하지 않는 이벤트입니다: {', '.join(unknown_events)}")
    unknown_sources = [name for name in data.sources if name not in WEBHOOK_SOURCES]
    if unknown_sources:
        raise HTTPException(status_code=400, detail=f"지원하지 않는 출처입니다: {', '.join(unknown_sources)}")

    row = Webhook(
        name=data.name,
        description=data.description,
        url=data.url,
        secret=data.secret,
        events=list(data.events),
        sources=list(data.sources),
        collection_ids=[int(value) for value in data.collection_ids],
        status=data.status,
        created_by=current_user.user_id if current_user is not None else None,
    )
    project.webhooks.append(row)
    db.commit()
    db.refresh(row)
    return row


def list_webhook_logs(db: Session, webhook: Webhook, limit: int = 50) -> List[WebhookLog]:
    return (
        db.query(WebhookLog)
        .filter(WebhookLog.webhook_id == webhook.webhook_id)
        .order_by(WebhookLog.log_id.desc())
        .limit(limit)
        .all()
    )


def get_webhook(db: Session, project: Project, webhook_id: int) -> Webhook:
    row = (
        db.query(Webhook)
        .filter(Webhook.project_id == project.project_id, Webhook.webhook_id == int(webhook_id))
        .first()
    )
    if not row:
        raise HTTPException(status_code=404, detail="웹훅을 찾을 수 없습니다.")
    return row
