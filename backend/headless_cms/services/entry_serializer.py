"""콘텐츠 엔트리를 Content API 응답 형태로 직렬화합니다.

필드는 스키마 order 순으로 출력하며, 관계 필드는 RelationBudget(남은 깊이 + 현재 경로의 uuid)이
허용하는 범위에서만 재귀 직렬화하고 나머지는 {"uuid", "truncated": True} 스텁으로 대체합니다.
"""

import logging
from collections import defaultdict
from dataclasses import dataclass, field as dataclass_field
from typing import Any, Dict, FrozenSet, List, Optional

from sqlalchemy.orm import Session

from headless_cms.config import settings
from headless_cms.models.collection import Field
from headless_cms.models.content import ContentEntry, ContentFieldGroup, ContentFieldValue
from headless_cms.schemas.field_options import RelationOptions
from headless_cms.services.asset_service import resolve_asset
from headless_cms.services.field_codec import decode_value, is_hidden_in_api, is_repeatable, options_for
from headless_cms.services.schema_service import FieldNode, resolve_field_tree

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RelationBudget:
    depth: int
    visited: FrozenSet[str] = dataclass_field(default_factory=frozenset)

    def allows(self, entry_uuid: str) -> bool:
        return self.depth > 0 and entry_uuid not in self.visited

    def descend(self, entry_uuid: str) -> "RelationBudget":
        return RelationBudget(depth=self.depth - 1, visited=self.visited | {entry_uuid})


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def truncated_stub(entry: ContentEntry) -> Dict[str, Any]:
    return {"uuid": entry.uuid, "truncated": True}


class EntrySerializer:
    def __init__(self, db: Session, max_relation_depth: Optional[int] = None):
        self.db = db
        self.max_relation_depth = (
            settings.RELATION_MAX_DEPTH if max_relation_depth is None else max(0, int(max_relation_depth))
        )
        self._trees: Dict[int, List[FieldNode]] = {}

    def field_tree(self, collection_id: int) -> List[FieldNode]:
        key = int(collection_id)
        if key not in self._trees:
            self._trees[key] = resolve_field_tree(self.db, key)
        return self._trees[key]

    def serialize(
        self,
        entry: ContentEntry,
        include_timestamps: bool = False,
        budget: Optional[RelationBudget] = None,
    ) -> Dict[str, Any]:
        if budget is None:
            budget = RelationBudget(depth=self.max_relation_depth, visited=frozenset({entry.uuid}))

        data: Dict[str, Any] = {
            "uuid": entry.uuid,
            "locale": entry.locale,
            "published_at": _iso(entry.published_at),
            "fields": self._serialize_fields(entry, budget),
        }
        if include_timestamps:
            data["created_at"] = _iso(entry.created_at)
            data["updated_at"] = _iso(entry.updated_at)
        return data

    def serialize_many(self, entries: List[ContentEntry], include_timestamps: bool = False) -> List[Dict[str, Any]]:
        return [self.serialize(entry, include_timestamps=include_timestamps) for entry in entries]

    def _serialize_fields(self, entry: ContentEntry, budget: RelationBudget) -> Dict[str, Any]:
        top_level_rows: Dict[int, List[ContentFieldValue]] = defaultdict(list)
        for row in entry.field_values:
            if row.group_instance_id is None and row.group_instance is None:
                top_level_rows[int(row.field_id)].append(row)

        groups_by_field: Dict[int, List[ContentFieldGroup]] = defaultdict(list)
        for instance in entry.field_groups:
            groups_by_field[int(instance.field_id)].append(instance)

        fields: Dict[str, Any] = {}
        for node in self.field_tree(entry.collection_id):
            field = node.field
            if is_hidden_in_api(field):
                continue
            if field.is_group:
                objects = [
                    self._serialize_group_instance(instance, node.children, budget)
                    for instance in groups_by_field.get(node.field_id, [])
                ]
                if is_repeatable(field):
                    fields[field.name] = objects
                else:
                    fields[field.name] = objects[0] if objects else {}
                continue

            rows = top_level_rows.get(node.field_id)
            if not rows:
                continue
            fields[field.name] = self._field_value(rows, field, budget)
        return fields

    def _serialize_group_instance(
        self,
        instance: ContentFieldGroup,
        children: List[Field],
        budget: RelationBudget,
    ) -> Dict[str, Any]:
        rows_by_field: Dict[int, List[ContentFieldValue]] = defaultdict(list)
        for row in instance.values:
            rows_by_field[int(row.field_id)].append(row)

        data: Dict[str, Any] = {}
        for child in children:
            if is_hidden_in_api(child):
                continue
            rows = rows_by_field.get(int(child.field_id))
            if not rows:
                continue
            data[child.name] = self._field_value(rows, child, budget)
        return data

    def _field_value(self, rows: List[ContentFieldValue], field: Field, budget: RelationBudget) -> Any:
        ordered = sorted(rows, key=lambda row: (row.sort_order or 0, row.value_id or 0))
        if is_repeatable(field):
            return [self._resolve(row, field, budget) for row in ordered]
        return self._resolve(ordered[0], field, budget)

    def _resolve(self, row: ContentFieldValue, field: Field, budget: RelationBudget) -> Any:
        if field.type == "media":
            return [
                resolve_asset(media.asset)
                for media in row.media_relations
                if media.asset is not None and media.asset.deleted_at is None
            ]
        if field.type == "relation":
            return self._resolve_relation(row, field, budget)
        return decode_value(row, field)

    def _resolve_relation(self, row: ContentFieldValue, field: Field, budget: RelationBudget) -> Any:
        related = [
            relation.related
            for relation in row.value_relations
            if relation.related is not None and relation.related.deleted_at is None
        ]
        if not related:
            return None

        items = [self._serialize_related(entry, budget) for entry in related]
        opts = options_for(field)
        if isinstance(opts, RelationOptions) and opts.is_multiple:
            return items
        return items[0]

    def _serialize_related(self, entry: ContentEntry, budget: RelationBudget) -> Dict[str, Any]:
        if not budget.allows(entry.uuid):
            logger.debug("[serializer] relation to %s truncated", entry.uuid)
            return truncated_stub(entry)
        return self.serialize(entry, budget=budget.descend(entry.uuid))
