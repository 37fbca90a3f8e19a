"""콘텐츠 엔트리 작성·수정·휴지통·영구삭제 서비스입니다.

제출된 필드 값을 값 코덱으로 분해해 EAV 행, 그룹 인스턴스, 관계/미디어 조인 행으로 저장합니다.
엔트리 한 건의 저장은 하나의 트랜잭션이며, 실패하면 전부 롤백합니다.
웹훅은 커밋이 끝난 뒤에 전송합니다.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from headless_cms.models.collection import Collection, Field
from headless_cms.models.content import (
    ENTRY_STATUSES,
    RELATED_TYPE_ENTRY,
    ContentEntry,
    ContentFieldGroup,
    ContentFieldValue,
    ContentMediaRelation,
    ContentRelationFieldRelation,
)
from headless_cms.models.project import Project
from headless_cms.models.user import User
from headless_cms.schemas.content import EntryWrite
from headless_cms.services import webhook_service
from headless_cms.services.asset_service import get_project_assets
from headless_cms.services.field_codec import (
    CodecError,
    apply_encoded,
    decode_value,
    encode_value,
    field_values_match,
    is_hidden_in_api,
    is_repeatable,
)
from headless_cms.services.schema_service import FieldNode, resolve_field_tree

logger = logging.getLogger(__name__)

ITEM_WRAPPER_KEYS = {"value", "sort_order", "order", "id"}


class EntryWriter:
    """엔트리 한 건의 필드 값을 세션에 기록합니다. 커밋은 호출자가 합니다."""

    def __init__(self, db: Session, entry: ContentEntry, preserved_passwords: Optional[Dict[int, str]] = None):
        self.db = db
        self.entry = entry
        self.preserved_passwords = preserved_passwords or {}

    def write(self, nodes: List[FieldNode], submitted: Dict[str, Any]) -> None:
        known = {node.name for node in nodes}
        for name in submitted:
            if name not in known:
                logger.warning("[content] unknown field %r ignored for entry %s", name, self.entry.uuid)

        for node in nodes:
            field = node.field
            if field.is_group:
                if submitted.get(field.name) is not None:
                    self.write_group(node, submitted[field.name])
                continue
            if field.name not in submitted and field.type != "password":
                continue
            self.write_field(field, submitted.get(field.name))

    def write_group(self, node: FieldNode, value: Any) -> None:
        field = node.field
        if is_repeatable(field):
            if not isinstance(value, list):
                raise HTTPException(status_code=400, detail=f"'{field.name}' 필드는 그룹 목록이어야 합니다.")
            instances = value
        else:
            if isinstance(value, list):
                if len(value) > 1:
                    raise HTTPException(status_code=400, detail=f"'{field.name}' 필드는 하나의 그룹만 가질 수 있습니다.")
                value = value[0] if value else None
            if value is None:
                return
            instances = [value]

        for position, instance_data in enumerate(instances):
            if not isinstance(instance_data, dict):
                raise HTTPException(status_code=400, detail=f"'{field.name}' 그룹 값은 객체여야 합니다.")
            instance = ContentFieldGroup(
                project_id=self.entry.project_id,
                collection_id=self.entry.collection_id,
                field_id=field.field_id,
                sort_order=position,
            )
            self.entry.field_groups.append(instance)
            for child in node.children:
                if child.name in instance_data:
                    self.write_field(child, instance_data[child.name], group=instance)

    def write_field(self, field: Field, value: Any, group: Optional[ContentFieldGroup] = None) -> None:
        if field.type == "password" and group is None and value in (None, ""):
            if field.field_id in self.preserved_passwords:
                value = self.preserved_passwords[field.field_id]
        if value is None:
            return

        if is_repeatable(field):
            items = value if isinstance(value, list) else [value]
            items = [self._unwrap_item(item) for item in items]
        else:
            items = [value]

        for position, item in enumerate(items):
            try:
                encoded = encode_value(field, item)
            except CodecError as exc:
                raise HTTPException(status_code=400, detail=f"'{field.name}' 필드 값 오류: {exc}")
            if encoded is None:
                continue

            row = ContentFieldValue(
                project_id=self.entry.project_id,
                collection_id=self.entry.collection_id,
                field_id=field.field_id,
                field_type=field.type,
                sort_order=position,
            )
            apply_encoded(row, encoded)
            self.entry.field_values.append(row)
            if group is not None:
                row.group_instance = group

            if encoded.related_ids:
                self._attach_relations(row, field, encoded.related_ids)
            if encoded.media_ids:
                self._attach_media(row, field, encoded.media_ids)

    @staticmethod
    def _unwrap_item(item: Any) -> Any:
        if isinstance(item, dict) and "value" in item and set(item) <= ITEM_WRAPPER_KEYS:
            return item["value"]
        return item

    def _attach_relations(self, row: ContentFieldValue, field: Field, related_ids: List[int]) -> None:
        ordered = list(dict.fromkeys(related_ids))
        found = {
            int(entry_id)
            for (entry_id,) in self.db.query(ContentEntry.entry_id)
            .filter(
                ContentEntry.project_id == self.entry.project_id,
                ContentEntry.entry_id.in_(ordered),
                ContentEntry.deleted_at.is_(None),
            )
            .all()
        }
        missing = [value for value in ordered if value not in found]
        if missing:
            raise HTTPException(
                status_code=400,
                detail=f"'{field.name}' 필드의 관계 대상 엔트리를 찾을 수 없습니다: {missing}",
            )
        for position, related_id in enumerate(ordered):
            row.value_relations.append(
                ContentRelationFieldRelation(related_id=related_id, related_type=RELATED_TYPE_ENTRY, sort_order=position)
            )

    def _attach_media(self, row: ContentFieldValue, field: Field, asset_ids: List[int]) -> None:
        ordered = list(dict.fromkeys(asset_ids))
        assets = get_project_assets(self.db, self.entry.project_id, ordered)
        missing = [value for value in ordered if value not in assets]
        if missing:
            raise HTTPException(status_code=400, detail=f"'{field.name}' 필드의 에셋을 찾을 수 없습니다: {missing}")
        for position, asset_id in enumerate(ordered):
            row.media_relations.append(ContentMediaRelation(asset_id=asset_id, sort_order=position))


def _validate_status(status: str) -> str:
    if status not in ENTRY_STATUSES:
        raise HTTPException(status_code=400, detail=f"지원하지 않는 상태입니다: {status}")
    return status


def _resolve_locale(project: Project, locale: Optional[str]) -> str:
    resolved = locale or project.default_locale
    allowed = set(project.locales or []) | {project.default_locale}
    if resolved not in allowed:
        raise HTTPException(status_code=400, detail=f"프로젝트에서 사용하지 않는 locale입니다: {resolved}")
    return resolved


def _ensure_singleton_free(db: Session, collection: Collection, locale: str) -> None:
    if not collection.is_singleton:
        return
    exists = (
        db.query(ContentEntry.entry_id)
        .filter(
            ContentEntry.collection_id == collection.collection_id,
            ContentEntry.locale == locale,
            ContentEntry.deleted_at.is_(None),
        )
        .first()
    )
    if exists:
        raise HTTPException(status_code=409, detail="싱글톤 컬렉션에는 locale마다 하나의 엔트리만 만들 수 있습니다.")


def run_in_transaction(db: Session, work):
    try:
        result = work()
        db.commit()
    except HTTPException:
        db.rollback()
        raise
    except IntegrityError as exc:
        db.rollback()
        logger.warning("[content] integrity error on entry save: %s", exc.orig)
        raise HTTPException(status_code=409, detail="저장 중 데이터 제약 조건을 위반했습니다.")
    except Exception:
        db.rollback()
        raise
    return result


def _dispatch(db: Session, project: Project, entry: ContentEntry, events: List[str], source: str) -> None:
    for event_name in events:
        webhook_service.dispatch_content_event(db, project, entry, event_name, source=source)


def get_entry(db: Session, collection: Collection, entry_uuid: str, include_trashed: bool = False) -> ContentEntry:
    query = db.query(ContentEntry).filter(
        ContentEntry.collection_id == collection.collection_id,
        ContentEntry.uuid == entry_uuid,
    )
    if not include_trashed:
        query = query.filter(ContentEntry.deleted_at.is_(None))
    row = query.first()
    if not row:
        raise HTTPException(status_code=404, detail="콘텐츠 엔트리를 찾을 수 없습니다.")
    return row


def list_entries(
    db: Session,
    collection: Collection,
    *,
    status: Optional[str] = None,
    locale: Optional[str] = None,
) -> List[ContentEntry]:
    query = db.query(ContentEntry).filter(
        ContentEntry.collection_id == collection.collection_id,
        ContentEntry.deleted_at.is_(None),
    )
    if status:
        query = query.filter(ContentEntry.status == _validate_status(status))
    if locale:
        query = query.filter(ContentEntry.locale == locale)
    return query.order_by(ContentEntry.entry_id.asc()).all()


UNFILTERABLE_TYPES = {"group", "relation", "media", "json"}


def filter_entries(
    db: Session,
    collection: Collection,
    entries: List[ContentEntry],
    criteria: Dict[str, Any],
) -> List[ContentEntry]:
    """최상위 스칼라 필드 값이 모두 일치하는 엔트리만 남깁니다. 반복 필드는 값 하나만 맞아도 됩니다."""
    if not criteria:
        return entries

    fields_by_name = {node.name: node.field for node in resolve_field_tree(db, collection.collection_id)}
    targets = []
    for name, expected in criteria.items():
        field = fields_by_name.get(name)
        if field is None or is_hidden_in_api(field):
            raise HTTPException(status_code=400, detail=f"필터할 수 없는 필드입니다: {name}")
        if field.type in UNFILTERABLE_TYPES:
            raise HTTPException(status_code=400, detail=f"'{field.type}' 타입 필드는 값으로 필터할 수 없습니다: {name}")
        targets.append((field, expected))

    matched = []
    for entry in entries:
        rows_by_field: Dict[int, List[ContentFieldValue]] = {}
        for row in entry.field_values:
            if row.group_instance_id is None:
                rows_by_field.setdefault(int(row.field_id), []).append(row)

        ok = True
        for field, expected in targets:
            actual = [decode_value(row, field) for row in rows_by_field.get(int(field.field_id), [])]
            if not actual:
                ok = field_values_match(field.type, expected, None)
            elif is_repeatable(field):
                ok = any(field_values_match(field.type, expected, value) for value in actual)
            else:
                ok = field_values_match(field.type, expected, actual[0])
            if not ok:
                break
        if ok:
            matched.append(entry)
    return matched


def create_entry(
    db: Session,
    project: Project,
    collection: Collection,
    data: EntryWrite,
    current_user: Optional[User] = None,
    source: str = "cms",
) -> ContentEntry:
    status = _validate_status(data.status)
    locale = _resolve_locale(project, data.locale)
    _ensure_singleton_free(db, collection, locale)
    nodes = resolve_field_tree(db, collection.collection_id)

    def work():
        entry = ContentEntry(
            project_id=project.project_id,
            locale=locale,
            status=status,
            published_at=datetime.utcnow() if status == "published" else None,
            translation_group_id=data.translation_group_id,
            created_by=current_user.user_id if current_user is not None else None,
            updated_by=current_user.user_id if current_user is not None else None,
        )
        collection.entries.append(entry)
        db.flush()
        EntryWriter(db, entry).write(nodes, data.fields)
        db.flush()
        return entry

    entry = run_in_transaction(db, work)
    db.refresh(entry)

    events = ["content.created"]
    if status == "published":
        events.append("content.published")
    _dispatch(db, project, entry, events, source)
    return entry


def update_entry(
    db: Session,
    project: Project,
    collection: Collection,
    entry: ContentEntry,
    data: EntryWrite,
    current_user: Optional[User] = None,
    source: str = "cms",
) -> ContentEntry:
    status = _validate_status(data.status)
    locale = _resolve_locale(project, data.locale or entry.locale)
    nodes = resolve_field_tree(db, collection.collection_id)
    previous_status = entry.status

    def work():
        preserved = {
            int(row.field_id): row.text_value
            for row in entry.field_values
            if row.field_type == "password" and row.group_instance_id is None and row.text_value is not None
        }
        # 값/그룹/조인 행은 지우고 다시 만든다.
        entry.field_values.clear()
        entry.field_groups.clear()
        db.flush()

        entry.locale = locale
        entry.status = status
        if status == "published" and entry.published_at is None:
            entry.published_at = datetime.utcnow()
        if data.translation_group_id is not None:
            entry.translation_group_id = data.translation_group_id
        if current_user is not None:
            entry.updated_by = current_user.user_id

        EntryWriter(db, entry, preserved_passwords=preserved).write(nodes, data.fields)
        db.flush()
        return entry

    entry = run_in_transaction(db, work)
    db.refresh(entry)

    events = ["content.updated"]
    if previous_status != "published" and status == "published":
        events.append("content.published")
    elif previous_status == "published" and status != "published":
        events.append("content.unpublished")
    _dispatch(db, project, entry, events, source)
    return entry


def trash_entry(db: Session, project: Project, entry: ContentEntry, source: str = "cms") -> ContentEntry:
    if entry.deleted_at is not None:
        raise HTTPException(status_code=400, detail="이미 휴지통에 있는 엔트리입니다.")
    entry.deleted_at = datetime.utcnow()
    db.commit()
    db.refresh(entry)
    _dispatch(db, project, entry, ["content.trashed"], source)
    return entry


def restore_entry(db: Session, entry: ContentEntry) -> ContentEntry:
    if entry.deleted_at is not None:
        _ensure_singleton_free(db, entry.collection, entry.locale)
    entry.deleted_at = None
    db.commit()
    db.refresh(entry)
    return entry


def force_delete_entry(db: Session, project: Project, entry: ContentEntry, source: str = "cms") -> None:
    prepared = webhook_service.prepare_content_event(db, project, entry, "content.deleted", source=source)

    def work():
        db.delete(entry)
        db.flush()

    run_in_transaction(db, work)
    webhook_service.deliver_all(db, project.uuid, prepared)
