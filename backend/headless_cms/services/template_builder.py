"""프로젝트/컬렉션을 이식 가능한 템플릿 문서로 내보내는 서비스입니다.

- 관계 필드의 대상 컬렉션 id는 slug로 바꿉니다.
- 데모 데이터는 발행(published)되고 삭제되지 않은 엔트리만 포함하며,
  엔트리 uuid마다 e1, e2, ... 형태의 심볼릭 id를 부여해 관계 값을 그 id로 다시 씁니다.
- 미디어 값은 내보내지 않습니다.
"""

import copy
import logging
import uuid
from collections import defaultdict
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from slugify import slugify
from sqlalchemy.orm import Session

from headless_cms.models.collection import Collection, Field
from headless_cms.models.content import ContentEntry, ContentFieldGroup, ContentFieldValue
from headless_cms.models.project import Project
from headless_cms.models.template import CollectionTemplate, CollectionTemplateField, ProjectTemplate
from headless_cms.services.field_codec import decode_value, is_repeatable
from headless_cms.services.schema_service import externalize_relation_target, resolve_field_tree

logger = logging.getLogger(__name__)


class SymbolicIdMap:
    """엔트리 uuid -> 심볼릭 id("e1", "e2", ...) 매핑. 한 번의 내보내기 동안만 유지됩니다."""

    def __init__(self, prefix: str = "e"):
        self.prefix = prefix
        self._ids: Dict[str, str] = {}

    def assign(self, entry_uuid: str) -> str:
        if entry_uuid not in self._ids:
            self._ids[entry_uuid] = f"{self.prefix}{len(self._ids) + 1}"
        return self._ids[entry_uuid]

    def get(self, entry_uuid: str) -> Optional[str]:
        return self._ids.get(entry_uuid)

    def __contains__(self, entry_uuid: str) -> bool:
        return entry_uuid in self._ids

    def __len__(self) -> int:
        return len(self._ids)


def _live_collections(db: Session, project: Project) -> List[Collection]:
    return (
        db.query(Collection)
        .filter(Collection.project_id == project.project_id, Collection.deleted_at.is_(None))
        .order_by(Collection.order.asc(), Collection.collection_id.asc())
        .all()
    )


def _published_entries(db: Session, collection: Collection) -> List[ContentEntry]:
    return (
        db.query(ContentEntry)
        .filter(
            ContentEntry.collection_id == collection.collection_id,
            ContentEntry.status == "published",
            ContentEntry.deleted_at.is_(None),
        )
        .order_by(ContentEntry.entry_id.asc())
        .all()
    )


def _slug_map(db: Session, project_id: int) -> Dict[int, str]:
    rows = (
        db.query(Collection.collection_id, Collection.slug)
        .filter(Collection.project_id == int(project_id), Collection.deleted_at.is_(None))
        .all()
    )
    return {int(collection_id): slug for collection_id, slug in rows}


def _field_doc(row: Field, slug_by_id: Dict[int, str]) -> Dict[str, Any]:
    options = copy.deepcopy(row.options or {})
    if row.type == "relation":
        options = externalize_relation_target(options, slug_by_id)
    return {
        "type": row.type,
        "label": row.label,
        "name": row.name,
        "description": row.description,
        "placeholder": row.placeholder,
        "options": options,
        "validations": row.validations or {},
    }


def _field_docs(db: Session, collection: Collection, slug_by_id: Dict[int, str]) -> List[Dict[str, Any]]:
    docs = []
    for node in resolve_field_tree(db, collection.collection_id):
        doc = _field_doc(node.field, slug_by_id)
        if node.field.is_group and node.children:
            doc["children"] = [_field_doc(child, slug_by_id) for child in node.children]
        docs.append(doc)
    return docs


# ---------------------------------------------------------------------------
# demo data
# ---------------------------------------------------------------------------

def _demo_scalar(row: ContentFieldValue, field: Field, id_map: SymbolicIdMap) -> Any:
    if field.type == "media":
        return None
    if field.type == "relation":
        symbolic = []
        for relation in row.value_relations:
            related = relation.related
            if related is None or related.uuid not in id_map:
                continue
            symbolic.append(id_map.get(related.uuid))
        return symbolic or None
    if field.type == "richtext" and row.json_value is not None:
        return {"html": row.text_value, "json": row.json_value}
    return decode_value(row, field)


def _demo_field_value(rows: List[ContentFieldValue], field: Field, id_map: SymbolicIdMap) -> Any:
    ordered = sorted(rows, key=lambda row: (row.sort_order or 0, row.value_id or 0))
    values = [_demo_scalar(row, field, id_map) for row in ordered]
    values = [value for value in values if value is not None]
    if not values:
        return None
    if is_repeatable(field):
        return values
    return values[0]


def _demo_group_instance(instance: ContentFieldGroup, children: List[Field], id_map: SymbolicIdMap) -> Dict[str, Any]:
    rows_by_field: Dict[int, List[ContentFieldValue]] = defaultdict(list)
    for row in instance.values:
        rows_by_field[int(row.field_id)].append(row)

    data: Dict[str, Any] = {}
    for child in children:
        rows = rows_by_field.get(int(child.field_id))
        if not rows:
            continue
        value = _demo_field_value(rows, child, id_map)
        if value is not None:
            data[child.name] = value
    return data


def _demo_entry(entry: ContentEntry, nodes, id_map: SymbolicIdMap) -> Dict[str, Any]:
    top_level_rows: Dict[int, List[ContentFieldValue]] = defaultdict(list)
    for row in entry.field_values:
        if row.group_instance_id is None:
            top_level_rows[int(row.field_id)].append(row)
    groups_by_field: Dict[int, List[ContentFieldGroup]] = defaultdict(list)
    for instance in entry.field_groups:
        groups_by_field[int(instance.field_id)].append(instance)

    fields: Dict[str, Any] = {}
    for node in nodes:
        field = node.field
        if field.is_group:
            objects = [
                _demo_group_instance(instance, node.children, id_map)
                for instance in groups_by_field.get(node.field_id, [])
            ]
            if not objects:
                continue
            fields[field.name] = objects if is_repeatable(field) else objects[0]
            continue
        rows = top_level_rows.get(node.field_id)
        if not rows:
            continue
        value = _demo_field_value(rows, field, id_map)
        if value is not None:
            fields[field.name] = value

    return {
        "id": id_map.get(entry.uuid),
        "locale": entry.locale,
        "status": entry.status,
        "fields": fields,
    }


def _demo_entries(db: Session, collection: Collection, entries: List[ContentEntry], id_map: SymbolicIdMap) -> List[Dict[str, Any]]:
    nodes = resolve_field_tree(db, collection.collection_id)
    return [_demo_entry(entry, nodes, id_map) for entry in entries]


# ---------------------------------------------------------------------------
# builders
# ---------------------------------------------------------------------------

def build_project_template(
    db: Session,
    project: Project,
    *,
    slug: Optional[str] = None,
    name: Optional[str] = None,
    description: Optional[str] = None,
    include_collections: bool = True,
    include_content: bool = False,
) -> Dict[str, Any]:
    collections = _live_collections(db, project) if include_collections else []
    slug_by_id = _slug_map(db, project.project_id)

    template: Dict[str, Any] = {
        "slug": slugify(slug) if slug else slugify(project.name),
        "name": name or project.name,
        "description": description if description is not None else f"Template exported from project #{project.project_id}",
        "default_locale": project.default_locale,
        "locales": list(project.locales or [project.default_locale]),
        "public_api": bool(project.public_api),
        "has_demo_data": bool(include_content),
        "collections": [
            {
                "name": collection.name,
                "slug": collection.slug,
                "is_singleton": bool(collection.is_singleton),
                "fields": _field_docs(db, collection, slug_by_id),
            }
            for collection in collections
        ],
    }

    if include_content:
        entries_by_collection = {collection.collection_id: _published_entries(db, collection) for collection in collections}
        id_map = SymbolicIdMap()
        for collection in collections:
            for entry in entries_by_collection[collection.collection_id]:
                id_map.assign(entry.uuid)

        demo_data = []
        for collection in collections:
            entries = entries_by_collection[collection.collection_id]
            if not entries:
                continue
            demo_data.append({
                "collection": collection.slug,
                "entries": _demo_entries(db, collection, entries, id_map),
            })
        template["demo_data"] = demo_data

    logger.info(
        "[template] exported project #%s (%d collections, demo=%s)",
        project.project_id, len(template["collections"]), include_content,
    )
    return template


def build_collection_template(db: Session, collection: Collection, include_content: bool = False) -> Dict[str, Any]:
    slug_by_id = _slug_map(db, collection.project_id)
    template: Dict[str, Any] = {
        "name": collection.name,
        "slug": collection.slug,
        "is_singleton": bool(collection.is_singleton),
        "fields": _field_docs(db, collection, slug_by_id),
    }
    if include_content:
        entries = _published_entries(db, collection)
        id_map = SymbolicIdMap()
        for entry in entries:
            id_map.assign(entry.uuid)
        # 다른 컬렉션을 가리키는 관계도 심볼릭 id로 남도록 프로젝트 전체에 id를 이어서 부여한다.
        for other in _live_collections(db, collection.project):
            for entry in _published_entries(db, other):
                id_map.assign(entry.uuid)
        template["demo_data"] = [{
            "collection": collection.slug,
            "entries": _demo_entries(db, collection, entries, id_map),
        }]
    return template


# ---------------------------------------------------------------------------
# persisted templates
# ---------------------------------------------------------------------------

def _unique_slug(db: Session, model, base_slug: str) -> str:
    slug = base_slug or "template"
    if db.query(model.template_id).filter(model.slug == slug).first() is None:
        return slug
    return f"{slug}-{uuid.uuid4().hex[:8]}"


def save_project_template(db: Session, document: Dict[str, Any]) -> ProjectTemplate:
    slug = _unique_slug(db, ProjectTemplate, slugify(document.get("slug") or document.get("name") or ""))
    stored = dict(document)
    stored["slug"] = slug
    row = ProjectTemplate(
        name=document.get("name") or slug,
        slug=slug,
        description=document.get("description"),
        has_demo_data=bool(document.get("has_demo_data")),
        data=stored,
    )
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("[template] saved project template %s", slug)
    return row


def save_collection_template(db: Session, collection: Collection, name: Optional[str] = None) -> CollectionTemplate:
    document = build_collection_template(db, collection)
    template_name = name or collection.name
    row = CollectionTemplate(
        name=template_name,
        slug=_unique_slug(db, CollectionTemplate, slugify(template_name)),
        description=collection.description,
        is_singleton=bool(collection.is_singleton),
    )
    for position, field_doc in enumerate(document["fields"], start=1):
        parent = _template_field(field_doc, position)
        row.fields.append(parent)
        for child_position, child_doc in enumerate(field_doc.get("children", []), start=1):
            child = _template_field(child_doc, child_position)
            row.fields.append(child)
            parent.children.append(child)
    db.add(row)
    db.commit()
    db.refresh(row)
    logger.info("[template] saved collection template %s", row.slug)
    return row


def _template_field(doc: Dict[str, Any], order: int) -> CollectionTemplateField:
    return CollectionTemplateField(
        type=doc["type"],
        label=doc["label"],
        name=doc["name"],
        description=doc.get("description"),
        placeholder=doc.get("placeholder"),
        order=order,
        options=doc.get("options") or {},
        validations=doc.get("validations") or {},
    )


def list_project_templates(db: Session) -> List[ProjectTemplate]:
    return db.query(ProjectTemplate).order_by(ProjectTemplate.name.asc(), ProjectTemplate.template_id.asc()).all()


def get_project_template(db: Session, slug: str) -> ProjectTemplate:
    row = db.query(ProjectTemplate).filter(ProjectTemplate.slug == slug).first()
    if not row:
        raise HTTPException(status_code=404, detail=f"프로젝트 템플릿 '{slug}'을(를) 찾을 수 없습니다.")
    return row


def get_collection_template(db: Session, slug: str) -> CollectionTemplate:
    row = db.query(CollectionTemplate).filter(CollectionTemplate.slug == slug).first()
    if not row:
        raise HTTPException(status_code=404, detail=f"컬렉션 템플릿 '{slug}'을(를) 찾을 수 없습니다.")
    return row


def list_collection_templates(db: Session) -> List[CollectionTemplate]:
    return db.query(CollectionTemplate).order_by(CollectionTemplate.name.asc(), CollectionTemplate.template_id.asc()).all()
