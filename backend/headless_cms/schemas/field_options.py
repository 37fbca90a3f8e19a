"""필드 타입별 options 맵을 해석하는 Pydantic 모델입니다.

options는 프로젝트마다 자유롭게 저장되는 JSON이므로, 타입별 모델로 읽되
알 수 없는 키는 그대로 보존하고 잘못된 값은 기본값으로 대체합니다.
"""

import logging
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, Field, ValidationError

logger = logging.getLogger(__name__)

RELATION_SINGLE = 1
RELATION_MULTIPLE = 2


class FieldOptions(BaseModel):
    repeatable: bool = False
    multiple: bool = False
    hidden_in_api: bool = Field(default=False, alias="hiddenInAPI")

    model_config = {"extra": "allow", "populate_by_name": True}


class RelationTarget(BaseModel):
    collection: Optional[Union[int, str]] = None
    type: int = RELATION_SINGLE

    model_config = {"extra": "allow"}


class RelationOptions(FieldOptions):
    relation: RelationTarget = Field(default_factory=RelationTarget)

    @property
    def is_multiple(self) -> bool:
        return self.relation.type == RELATION_MULTIPLE


class DateOptions(FieldOptions):
    mode: str = "single"
    include_time: bool = Field(default=False, alias="includeTime")

    @property
    def is_range(self) -> bool:
        return self.mode == "range"


class EnumerationSpec(BaseModel):
    list: List[Any] = Field(default_factory=list)

    model_config = {"extra": "allow"}


class EnumerationOptions(FieldOptions):
    enumeration: EnumerationSpec = Field(default_factory=EnumerationSpec)


class EditorOptions(BaseModel):
    output_format: str = Field(default="html", alias="outputFormat")

    model_config = {"extra": "allow", "populate_by_name": True}


class RichTextOptions(FieldOptions):
    editor: EditorOptions = Field(default_factory=EditorOptions)

    @property
    def outputs_html(self) -> bool:
        return self.editor.output_format == "html"


OPTION_MODELS = {
    "relation": RelationOptions,
    "date": DateOptions,
    "datetime": DateOptions,
    "enumeration": EnumerationOptions,
    "richtext": RichTextOptions,
}


def _drop_nulls(raw: Dict[str, Any]) -> Dict[str, Any]:
    return {key: value for key, value in raw.items() if value is not None}


def parse_field_options(field_type: str, options: Any) -> FieldOptions:
    model = OPTION_MODELS.get(field_type, FieldOptions)
    raw = _drop_nulls(options) if isinstance(options, dict) else {}
    try:
        return model.model_validate(raw)
    except ValidationError as exc:
        logger.warning("[codec] malformed %s options, using defaults: %s", field_type, exc.errors())
        return model()
