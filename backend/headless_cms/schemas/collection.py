"""컬렉션/필드 정의 요청·응답 Pydantic 스키마입니다."""

from datetime import datetime
from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class CollectionCreate(BaseModel):
    name: str = Field(min_length=1, max_length=60)
    slug: Optional[str] = Field(default=None, max_length=60)
    description: Optional[str] = None
    is_singleton: bool = False
    order: Optional[int] = None


class CollectionOut(BaseModel):
    collection_id: int
    uuid: str
    project_id: int
    name: str
    slug: str
    description: Optional[str] = None
    order: int
    is_singleton: bool
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class FieldCreate(BaseModel):
    type: str
    label: str = Field(min_length=1, max_length=60)
    name: Optional[str] = Field(default=None, max_length=60)
    description: Optional[str] = None
    placeholder: Optional[str] = None
    options: Dict[str, Any] = Field(default_factory=dict)
    validations: Dict[str, Any] = Field(default_factory=dict)
    order: Optional[int] = None
    parent_field_id: Optional[int] = None


class FieldOut(BaseModel):
    field_id: int
    uuid: str
    collection_id: int
    parent_field_id: Optional[int] = None
    type: str
    label: str
    name: str
    description: Optional[str] = None
    placeholder: Optional[str] = None
    options: Dict[str, Any] = Field(default_factory=dict)
    validations: Dict[str, Any] = Field(default_factory=dict)
    order: int

    model_config = {"from_attributes": True}
