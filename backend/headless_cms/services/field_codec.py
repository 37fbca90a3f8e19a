"""필드 타입 ↔ 물리 저장 컬럼 양방향 변환(값 코덱) 서비스입니다.

쓰기 방향은 제출된 값을 EncodedValue(채울 컬럼 + 조인 대상 id 목록)로,
읽기 방향은 ContentFieldValue 행을 쓰기 때 받았던 형태의 값으로 되돌립니다.
엔트리 직렬화, 템플릿 내보내기/가져오기, 테스트 비교 헬퍼가 모두 이 모듈을 공유합니다.
"""

import json
import logging
from dataclasses import dataclass, field as dataclass_field
from datetime import date, datetime, timezone
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

from headless_cms.schemas.field_options import (
    DateOptions,
    EnumerationOptions,
    FieldOptions,
    RichTextOptions,
    parse_field_options,
)

logger = logging.getLogger(__name__)

TEXT_TYPES = {"text", "longtext", "slug", "email", "password", "color", "time"}
DATE_TYPES = {"date", "datetime"}
JOIN_TYPES = {"relation", "media"}
STORAGE_COLUMNS = (
    "text_value",
    "number_value",
    "boolean_value",
    "date_value",
    "date_value_end",
    "datetime_value",
    "datetime_value_end",
    "json_value",
)
TRUE_STRINGS = {"1", "true", "yes", "on"}
NUMBER_QUANTUM = Decimal("0.000001")


class CodecError(ValueError):
    """제출된 값을 필드 타입의 저장 형태로 바꿀 수 없을 때 발생합니다."""


@dataclass
class EncodedValue:
    columns: Dict[str, Any] = dataclass_field(default_factory=dict)
    related_ids: List[int] = dataclass_field(default_factory=list)
    media_ids: List[int] = dataclass_field(default_factory=list)


def options_for(field) -> FieldOptions:
    return parse_field_options(field.type, field.options)


def is_repeatable(field) -> bool:
    return bool(options_for(field).repeatable)


def is_hidden_in_api(field) -> bool:
    return field.type == "password" or bool(options_for(field).hidden_in_api)


# ---------------------------------------------------------------------------
# write direction
# ---------------------------------------------------------------------------

def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in TRUE_STRINGS
    return bool(value)


def _to_decimal(value: Any) -> Decimal:
    if isinstance(value, bool):
        raise CodecError("숫자 필드에 불리언 값을 저장할 수 없습니다.")
    try:
        return Decimal(str(value).strip()).quantize(NUMBER_QUANTUM)
    except (InvalidOperation, ValueError):
        raise CodecError(f"숫자로 변환할 수 없는 값입니다: {value!r}")


def _parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, date):
        parsed = datetime(value.year, value.month, value.day)
    else:
        text = str(value).strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise CodecError(f"날짜/시간 형식이 올바르지 않습니다: {value!r}")
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


def _parse_date(value: Any) -> Optional[date]:
    if isinstance(value, date) and not isinstance(value, datetime):
        return value
    parsed = _parse_datetime(value)
    return parsed.date() if parsed else None


def _split_range(value: Any):
    if isinstance(value, dict):
        return value.get("start"), value.get("end")
    if isinstance(value, (list, tuple)):
        items = list(value) + [None, None]
        return items[0], items[1]
    if isinstance(value, str) and " - " in value:
        start, end = value.split(" - ", 1)
        return start.strip(), end.strip()
    return value, None


def _encode_date(field, value: Any) -> Optional[EncodedValue]:
    opts = options_for(field)
    use_datetime = field.type == "datetime" or (isinstance(opts, DateOptions) and opts.include_time)
    parse = _parse_datetime if use_datetime else _parse_date
    column = "datetime_value" if use_datetime else "date_value"

    if isinstance(opts, DateOptions) and opts.is_range:
        start, end = _split_range(value)
        start_value, end_value = parse(start), parse(end)
        # 시작/종료가 모두 비어 있는 범위는 행을 만들지 않는다.
        if start_value is None and end_value is None:
            return None
        return EncodedValue(columns={column: start_value, f"{column}_end": end_value})

    if isinstance(value, dict):
        value = value.get("start")
    single = parse(value)
    if single is None:
        return None
    return EncodedValue(columns={column: single})


def _encode_json(value: Any) -> Any:
    if isinstance(value, str):
        try:
            return json.loads(value)
        except json.JSONDecodeError:
            raise CodecError("JSON 필드 값이 올바른 JSON이 아닙니다.")
    return value


def _encode_richtext(value: Any) -> EncodedValue:
    if isinstance(value, dict):
        return EncodedValue(columns={"text_value": value.get("html"), "json_value": value.get("json")})
    return EncodedValue(columns={"text_value": str(value)})


def _id_list(value: Any) -> List[int]:
    raw_items = value if isinstance(value, (list, tuple)) else [value]
    ids: List[int] = []
    for raw in raw_items:
        if raw is None or raw == "":
            continue
        if isinstance(raw, bool):
            raise CodecError(f"id 값이 올바르지 않습니다: {raw!r}")
        try:
            ids.append(int(raw))
        except (TypeError, ValueError):
            raise CodecError(f"id 값이 올바르지 않습니다: {raw!r}")
    return ids


def encode_value(field, value: Any) -> Optional[EncodedValue]:
    """제출된 단일 값을 저장 형태로 변환합니다. None이면 행을 만들지 않습니다."""
    if value is None:
        return None
    field_type = field.type

    if field_type == "group":
        # 그룹은 값 행이 아니라 인스턴스 단위로 content_service에서 기록한다.
        return None
    if field_type == "number":
        if value == "":
            return None
        return EncodedValue(columns={"number_value": _to_decimal(value)})
    if field_type == "boolean":
        return EncodedValue(columns={"boolean_value": _to_bool(value)})
    if field_type in TEXT_TYPES:
        return EncodedValue(columns={"text_value": value if isinstance(value, str) else str(value)})
    if field_type == "richtext":
        return _encode_richtext(value)
    if field_type in DATE_TYPES:
        return _encode_date(field, value)
    if field_type == "enumeration":
        selected = list(value) if isinstance(value, (list, tuple)) else [value]
        return EncodedValue(columns={"json_value": selected})
    if field_type == "json":
        return EncodedValue(columns={"json_value": _encode_json(value)})
    if field_type == "relation":
        ids = _id_list(value)
        return EncodedValue(related_ids=ids) if ids else None
    if field_type == "media":
        ids = _id_list(value)
        return EncodedValue(media_ids=ids) if ids else None

    logger.warning("[codec] unknown field type %r stored as text", field_type)
    return EncodedValue(columns={"text_value": str(value)})


def apply_encoded(row, encoded: EncodedValue) -> None:
    for column in STORAGE_COLUMNS:
        setattr(row, column, encoded.columns.get(column))


# ---------------------------------------------------------------------------
# read direction
# ---------------------------------------------------------------------------

def _decode_number(value: Any):
    if value is None:
        return None
    number = float(value)
    return int(number) if number.is_integer() else number


def _iso(value: Any) -> Optional[str]:
    if value is None:
        return None
    return value.isoformat()


def _decode_date(row, field_type: str, opts: FieldOptions):
    use_datetime = field_type == "datetime" or (isinstance(opts, DateOptions) and opts.include_time)
    if use_datetime:
        start = row.datetime_value if row.datetime_value is not None else row.date_value
        end = row.datetime_value_end if row.datetime_value_end is not None else row.date_value_end
    else:
        start = row.date_value if row.date_value is not None else row.datetime_value
        end = row.date_value_end if row.date_value_end is not None else row.datetime_value_end

    if isinstance(opts, DateOptions) and opts.is_range:
        return {"start": _iso(start), "end": _iso(end)}
    return _iso(start)


def decode_value(row, field=None) -> Any:
    """저장된 행을 필드 타입에 맞는 값으로 복원합니다.

    relation/media는 정렬된 id 목록을 돌려주며, 엔트리 직렬화기가 실제 객체로 대체합니다.
    """
    field_type = field.type if field is not None else row.field_type
    opts = parse_field_options(field_type, field.options if field is not None else None)

    if field_type == "number":
        return _decode_number(row.number_value)
    if field_type == "boolean":
        return row.boolean_value
    if field_type in TEXT_TYPES:
        return row.text_value
    if field_type == "richtext":
        if isinstance(opts, RichTextOptions) and not opts.outputs_html:
            return row.json_value
        return row.text_value
    if field_type in DATE_TYPES:
        return _decode_date(row, field_type, opts)
    if field_type == "enumeration":
        selected = row.json_value
        if isinstance(selected, list) and isinstance(opts, EnumerationOptions) and not opts.multiple:
            return selected[0] if selected else None
        return selected
    if field_type == "json":
        return row.json_value
    if field_type == "relation":
        return [rel.related_id for rel in row.value_relations]
    if field_type == "media":
        return [media.asset_id for media in row.media_relations]
    return row.text_value


# ---------------------------------------------------------------------------
# type-aware comparison helpers
# ---------------------------------------------------------------------------

def _as_set(value: Any) -> set:
    items = value if isinstance(value, (list, tuple, set)) else [value]
    return {json.dumps(item, sort_keys=True, default=str) for item in items}


def field_values_match(field_type: str, expected: Any, actual: Any) -> bool:
    """필드 타입을 고려해 두 값이 같은지 비교합니다."""
    if expected is None or actual is None:
        return expected is None and actual is None
    if field_type == "number":
        try:
            return float(expected) == float(actual)
        except (TypeError, ValueError):
            return False
    if field_type == "enumeration":
        return _as_set(expected) == _as_set(actual)
    if field_type == "boolean":
        return _to_bool(expected) == _to_bool(actual)
    if field_type in TEXT_TYPES or (field_type == "richtext" and isinstance(expected, str)):
        return str(expected) == str(actual)
    return expected == actual
