"""프로젝트 웹훅 구독 관리 API 라우터입니다."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from headless_cms.database import get_db
from headless_cms.middleware.auth_middleware import require_roles
from headless_cms.models.user import User
from headless_cms.schemas.webhook import WebhookCreate, WebhookLogOut, WebhookOut
from headless_cms.services import schema_service, webhook_service
from headless_cms.utils.permissions import ADMIN

router = APIRouter(prefix="/api/projects/{project_id}/webhooks", tags=["webhooks"])


@router.get("", response_model=List[WebhookOut])
def list_webhooks(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(ADMIN)),
):
    project = schema_service.get_project(db, project_id)
    return webhook_service.list_webhooks(db, project)


@router.post("", response_model=WebhookOut)
def create_webhook(
    project_id: int,
    data: WebhookCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(ADMIN)),
):
    project = schema_service.get_project(db, project_id)
    return webhook_service.create_webhook(db, project, data, current_user)


@router.get("/{webhook_id}/logs", response_model=List[WebhookLogOut])
def list_webhook_logs(
    project_id: int,
    webhook_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(ADMIN)),
):
    project = schema_service.get_project(db, project_id)
    webhook = webhook_service.get_webhook(db, project, webhook_id)
    return webhook_service.list_webhook_logs(db, webhook)
