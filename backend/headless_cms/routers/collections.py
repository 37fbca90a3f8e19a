"""컬렉션/필드 스키마 관리 API 라우터입니다."""

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from headless_cms.database import get_db
from headless_cms.middleware.auth_middleware import get_current_user, require_roles
from headless_cms.models.user import User
from headless_cms.schemas.collection import CollectionCreate, CollectionOut, FieldCreate, FieldOut
from headless_cms.services import schema_service
from headless_cms.utils.permissions import ADMIN

router = APIRouter(prefix="/api/projects/{project_id}/collections", tags=["collections"])


@router.get("", response_model=List[CollectionOut])
def list_collections(
    project_id: int,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    schema_service.get_project(db, project_id)
    return schema_service.list_collections(db, project_id)


@router.post("", response_model=CollectionOut)
def create_collection(
    project_id: int,
    data: CollectionCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(ADMIN)),
):
    project = schema_service.get_project(db, project_id)
    return schema_service.create_collection(db, project, data)


@router.get("/{slug}/schema")
def get_collection_schema(
    project_id: int,
    slug: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    collection = schema_service.get_collection_by_slug(db, project_id, slug)
    return schema_service.serialize_collection_schema(db, collection)


@router.post("/{slug}/fields", response_model=FieldOut)
def create_field(
    project_id: int,
    slug: str,
    data: FieldCreate,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(ADMIN)),
):
    collection = schema_service.get_collection_by_slug(db, project_id, slug)
    return schema_service.create_field(db, collection, data)
