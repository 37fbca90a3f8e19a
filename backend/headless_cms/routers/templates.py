"""프로젝트/컬렉션 템플릿 내보내기·가져오기 API 라우터입니다."""

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from headless_cms.database import get_db
from headless_cms.middleware.auth_middleware import get_current_user, require_roles
from headless_cms.models.user import User
from headless_cms.schemas.collection import CollectionOut
from headless_cms.schemas.template import (
    CollectionTemplateOut,
    CollectionTemplateSave,
    ProjectImportRequest,
    ProjectTemplateOut,
    TemplateExportRequest,
)
from headless_cms.services import schema_service, template_builder, template_importer
from headless_cms.utils.permissions import ADMIN

router = APIRouter(prefix="/api", tags=["templates"])


@router.get("/projects/{project_id}/export")
def export_project(
    project_id: int,
    slug: Optional[str] = Query(default=None),
    name: Optional[str] = Query(default=None),
    description: Optional[str] = Query(default=None),
    include_collections: bool = Query(default=True),
    include_content: bool = Query(default=False),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(ADMIN)),
):
    project = schema_service.get_project(db, project_id)
    return template_builder.build_project_template(
        db,
        project,
        slug=slug,
        name=name,
        description=description,
        include_collections=include_collections,
        include_content=include_content,
    )


@router.get("/projects/{project_id}/collections/{slug}/export")
def export_collection(
    project_id: int,
    slug: str,
    include_content: bool = Query(default=False),
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(ADMIN)),
):
    collection = schema_service.get_collection_by_slug(db, project_id, slug)
    return template_builder.build_collection_template(db, collection, include_content=include_content)


def _resolve_document(db: Session, data: ProjectImportRequest):
    if data.document is not None:
        return data.document
    if data.template_slug:
        return template_builder.get_project_template(db, data.template_slug).data
    raise HTTPException(status_code=400, detail="템플릿 문서 또는 템플릿 slug가 필요합니다.")


@router.post("/projects/import")
def import_project(
    data: ProjectImportRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(ADMIN)),
):
    project = template_importer.create_project_from_template(
        db,
        _resolve_document(db, data),
        name=data.name,
        description=data.description,
        with_demo_data=data.with_demo_data,
    )
    return {"project_id": project.project_id, "uuid": project.uuid, "name": project.name}


@router.post("/projects/{project_id}/apply-template")
def apply_template(
    project_id: int,
    data: ProjectImportRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(ADMIN)),
):
    project = schema_service.get_project(db, project_id)
    return template_importer.apply_project_template(
        db, project, _resolve_document(db, data), with_demo_data=data.with_demo_data
    )


@router.get("/project-templates", response_model=List[ProjectTemplateOut])
def list_project_templates(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return template_builder.list_project_templates(db)


@router.post("/projects/{project_id}/project-templates", response_model=ProjectTemplateOut)
def save_project_template(
    project_id: int,
    data: TemplateExportRequest,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(ADMIN)),
):
    project = schema_service.get_project(db, project_id)
    document = template_builder.build_project_template(
        db,
        project,
        slug=data.slug,
        name=data.name,
        description=data.description,
        include_collections=data.include_collections,
        include_content=data.include_content,
    )
    return template_builder.save_project_template(db, document)


@router.get("/collection-templates", response_model=List[CollectionTemplateOut])
def list_collection_templates(
    db: Session = Depends(get_db),
    current_user: User = Depends(get_current_user),
):
    return template_builder.list_collection_templates(db)


@router.post("/projects/{project_id}/collections/{slug}/collection-templates", response_model=CollectionTemplateOut)
def save_collection_template(
    project_id: int,
    slug: str,
    data: CollectionTemplateSave,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(ADMIN)),
):
    collection = schema_service.get_collection_by_slug(db, project_id, slug)
    return template_builder.save_collection_template(db, collection, name=data.name)


@router.post("/projects/{project_id}/collection-templates/{template_slug}/apply", response_model=CollectionOut)
def apply_collection_template(
    project_id: int,
    template_slug: str,
    db: Session = Depends(get_db),
    current_user: User = Depends(require_roles(ADMIN)),
):
    project = schema_service.get_project(db, project_id)
    template = template_builder.get_collection_template(db, template_slug)
    return template_importer.apply_collection_template(db, project, template)
