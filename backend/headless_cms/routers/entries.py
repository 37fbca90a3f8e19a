"""관리 화면용 콘텐츠 엔트리 API 라우터입니다."""

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from headless_cms.database import get_db
from headless_cms.middleware.auth_middleware import get_current_user, require_roles
from headless_cms.models.user import User
from headless_cms.schemas.content import EntryWrite
from headless_cms.services import content_service, schema_service
from headless_cms.services.entry_serializer import EntrySerializer
from headless_cms.utils.permissions import WRITE_ROLES

router = APIRouter(prefix="/api/projects/{project_id}/collections/{slug}/entries", tags=["entries"])


@router.get("")
def list_entries(
    project_id: int,
    slug: str,
    status: Optional[str] = Query(default=None),
    locale: Optional[str] = Query(default=None),
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    collection = schema_service.get_collection_by_slug(db, project_id, slug)
    rows = content_service.list_entries(db, collection, status=status, locale=locale)
    return EntrySerializer(db).serialize_many(rows, include_timestamps=True)


@router.post("")
def create_entry(
    project_id: int,
    slug: str,
    data: EntryWrite,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*WRITE_ROLES)),
):
    project = schema_service.get_project(db, project_id)
    collection = schema_service.get_collection_by_slug(db, project_id, slug)
    entry = content_service.create_entry(db, project, collection, data, current_user)
    return EntrySerializer(db).serialize(entry, include_timestamps=True)


@router.get("/{entry_uuid}")
def get_entry(
    project_id: int,
    slug: str,
    entry_uuid: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    collection = schema_service.get_collection_by_slug(db, project_id, slug)
    entry = content_service.get_entry(db, collection, entry_uuid)
    return EntrySerializer(db).serialize(entry, include_timestamps=True)


@router.put("/{entry_uuid}")
def update_entry(
    project_id: int,
    slug: str,
    entry_uuid: str,
    data: EntryWrite,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*WRITE_ROLES)),
):
    project = schema_service.get_project(db, project_id)
    collection = schema_service.get_collection_by_slug(db, project_id, slug)
    entry = content_service.get_entry(db, collection, entry_uuid)
    entry = content_service.update_entry(db, project, collection, entry, data, current_user)
    return EntrySerializer(db).serialize(entry, include_timestamps=True)


@router.delete("/{entry_uuid}")
def trash_entry(
    project_id: int,
    slug: str,
    entry_uuid: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*WRITE_ROLES)),
):
    project = schema_service.get_project(db, project_id)
    collection = schema_service.get_collection_by_slug(db, project_id, slug)
    entry = content_service.get_entry(db, collection, entry_uuid)
    content_service.trash_entry(db, project, entry)
    return {"message": "엔트리를 휴지통으로 이동했습니다."}


@router.post("/{entry_uuid}/restore")
def restore_entry(
    project_id: int,
    slug: str,
    entry_uuid: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*WRITE_ROLES)),
):
    collection = schema_service.get_collection_by_slug(db, project_id, slug)
    entry = content_service.get_entry(db, collection, entry_uuid, include_trashed=True)
    entry = content_service.restore_entry(db, entry)
    return EntrySerializer(db).serialize(entry, include_timestamps=True)


@router.delete("/{entry_uuid}/force")
def force_delete_entry(
    project_id: int,
    slug: str,
    entry_uuid: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(*WRITE_ROLES)),
):
    project = schema_service.get_project(db, project_id)
    collection = schema_service.get_collection_by_slug(db, project_id, slug)
    entry = content_service.get_entry(db, collection, entry_uuid, include_trashed=True)
    content_service.force_delete_entry(db, project, entry)
    return {"message": "엔트리를 영구 삭제했습니다."}
