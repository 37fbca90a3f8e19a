"""콘텐츠 엔트리 작성/수정 요청 스키마입니다."""

from typing import Any, Dict, Optional

from pydantic import BaseModel, Field


class EntryWrite(BaseModel):
    locale: Optional[str] = Field(default=None, max_length=10)
    status: str = "draft"
    translation_group_id: Optional[str] = None
    # 필드 name -> 제출 값. 그룹은 객체(반복 시 객체 목록), 관계/미디어는 id 목록.
    fields: Dict[str, Any] = Field(default_factory=dict)
