"""프로젝트/컬렉션 템플릿 문서와 내보내기·가져오기 요청 스키마입니다."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class TemplateFieldDoc(BaseModel):
    type: str
    label: str
    name: str
    description: Optional[str] = None
    placeholder: Optional[str] = None
    options: Dict[str, Any] = Field(default_factory=dict)
    validations: Dict[str, Any] = Field(default_factory=dict)
    children: List["TemplateFieldDoc"] = Field(default_factory=list)


TemplateFieldDoc.model_rebuild()


class TemplateCollectionDoc(BaseModel):
    name: str
    slug: str
    is_singleton: bool = False
    fields: List[TemplateFieldDoc] = Field(default_factory=list)


class DemoEntryDoc(BaseModel):
    id: str
    locale: Optional[str] = None
    status: str = "draft"
    fields: Dict[str, Any] = Field(default_factory=dict)


class DemoCollectionDoc(BaseModel):
    collection: str
    entries: List[DemoEntryDoc] = Field(default_factory=list)


class ProjectTemplateDocument(BaseModel):
    slug: str
    name: str
    description: Optional[str] = None
    has_demo_data: bool = False
    default_locale: Optional[str] = None
    locales: Optional[List[str]] = None
    public_api: Optional[bool] = None
    collections: List[TemplateCollectionDoc] = Field(default_factory=list)
    demo_data: Optional[List[DemoCollectionDoc]] = None


class TemplateExportRequest(BaseModel):
    slug: Optional[str] = None
    name: Optional[str] = None
    description: Optional[str] = None
    include_collections: bool = True
    include_content: bool = False


class ProjectImportRequest(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    template_slug: Optional[str] = None
    document: Optional[ProjectTemplateDocument] = None
    with_demo_data: bool = True


class CollectionTemplateSave(BaseModel):
    name: Optional[str] = None


class ProjectTemplateOut(BaseModel):
    template_id: int
    uuid: str
    name: str
    slug: str
    description: Optional[str] = None
    has_demo_data: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class CollectionTemplateOut(BaseModel):
    template_id: int
    uuid: str
    name: str
    slug: str
    description: Optional[str] = None
    is_singleton: bool

    model_config = {"from_attributes": True}
