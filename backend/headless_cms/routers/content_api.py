"""외부 소비자용 Content API 라우터입니다.

프로젝트 공개 API가 켜져 있거나 Bearer 토큰이 프로젝트 API 토큰과 같을 때 조회할 수 있고,
엔트리 작성은 항상 API 토큰이 필요합니다. 기본 조회 대상은 발행된 엔트리입니다.
"""

import re
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from sqlalchemy.orm import Session

from headless_cms.database import get_db
from headless_cms.middleware.auth_middleware import get_api_project, get_api_write_project
from headless_cms.models.project import Project
from headless_cms.schemas.content import EntryWrite
from headless_cms.services import content_service, schema_service
from headless_cms.services.entry_serializer import EntrySerializer

router = APIRouter(prefix="/api/v1/{project_uuid}", tags=["content-api"])

WHERE_PARAM = re.compile(r"^where\[([A-Za-z0-9_\-]+)\]$")


def _where_criteria(request: Request) -> Dict[str, Any]:
    criteria: Dict[str, Any] = {}
    for key, value in request.query_params.multi_items():
        match = WHERE_PARAM.match(key)
        if match:
            criteria[match.group(1)] = value
    return criteria


@router.get("/collections/{slug}")
def get_collection(
    slug: str,
    project: Project = Depends(get_api_project),
    db: Session = Depends(get_db),
):
    collection = schema_service.get_collection_by_slug(db, project.project_id, slug)
    return schema_service.serialize_collection_schema(db, collection)


@router.get("/content/{slug}")
def list_content(
    slug: str,
    request: Request,
    status: str = Query(default="published"),
    locale: Optional[str] = Query(default=None),
    timestamps: bool = Query(default=False),
    project: Project = Depends(get_api_project),
    db: Session = Depends(get_db),
):
    collection = schema_service.get_collection_by_slug(db, project.project_id, slug)
    rows = content_service.list_entries(db, collection, status=status, locale=locale)
    rows = content_service.filter_entries(db, collection, rows, _where_criteria(request))
    serializer = EntrySerializer(db)
    if collection.is_singleton:
        if not rows:
            raise HTTPException(status_code=404, detail="Content not found")
        return serializer.serialize(rows[0], include_timestamps=timestamps)
    return serializer.serialize_many(rows, include_timestamps=timestamps)


@router.get("/content/{slug}/{entry_uuid}")
def get_content(
    slug: str,
    entry_uuid: str,
    status: str = Query(default="published"),
    timestamps: bool = Query(default=False),
    project: Project = Depends(get_api_project),
    db: Session = Depends(get_db),
):
    collection = schema_service.get_collection_by_slug(db, project.project_id, slug)
    entry = content_service.get_entry(db, collection, entry_uuid)
    if status and entry.status != status:
        raise HTTPException(status_code=404, detail="Content not found")
    return EntrySerializer(db).serialize(entry, include_timestamps=timestamps)


@router.post("/content/{slug}")
def create_content(
    slug: str,
    data: EntryWrite,
    project: Project = Depends(get_api_write_project),
    db: Session = Depends(get_db),
):
    collection = schema_service.get_collection_by_slug(db, project.project_id, slug)
    entry = content_service.create_entry(db, project, collection, data, source="api")
    return EntrySerializer(db).serialize(entry, include_timestamps=True)
