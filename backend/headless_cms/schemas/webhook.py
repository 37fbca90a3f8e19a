"""웹훅 구독 요청/응답 스키마입니다."""

from datetime import datetime
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field


class WebhookCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    description: Optional[str] = None
    url: str = Field(min_length=1, max_length=500)
    secret: Optional[str] = None
    events: List[str] = Field(default_factory=list)
    sources: List[str] = Field(default_factory=lambda: ["cms", "api"])
    collection_ids: List[int] = Field(default_factory=list)
    status: bool = True


class WebhookOut(BaseModel):
    webhook_id: int
    project_id: int
    name: str
    description: Optional[str] = None
    url: str
    events: List[str] = Field(default_factory=list)
    sources: List[str] = Field(default_factory=list)
    collection_ids: List[int] = Field(default_factory=list)
    status: bool
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}


class WebhookLogOut(BaseModel):
    log_id: int
    webhook_id: int
    action: str
    url: str
    status: str
    request: Optional[Dict[str, Any]] = None
    response: Optional[str] = None
    created_at: Optional[datetime] = None

    model_config = {"from_attributes": True}
