"""컬렉션 스키마(필드 트리) 조회·직렬화와 관계 대상 외부화/내부화를 담당하는 서비스입니다.

필드는 한 번의 쿼리로 읽어 parent_field_id 기준의 자식 인덱스(arena)를 만들고,
최상위 필드와 그 자식(그룹은 1단계까지만 중첩)을 order 순으로 돌려줍니다.
"""

import copy
import logging
from collections import defaultdict
from dataclasses import dataclass, field as dataclass_field
from typing import Any, Dict, List, Optional

from fastapi import HTTPException
from slugify import slugify
from sqlalchemy import func
from sqlalchemy.orm import Session

from headless_cms.models.collection import FIELD_TYPES, Collection, Field
from headless_cms.models.project import Project
from headless_cms.schemas.collection import CollectionCreate, FieldCreate
from headless_cms.schemas.field_options import RELATION_SINGLE

logger = logging.getLogger(__name__)


@dataclass
class FieldNode:
    field: Field
    children: List[Field] = dataclass_field(default_factory=list)

    @property
    def field_id(self) -> int:
        return int(self.field.field_id)

    @property
    def name(self) -> str:
        return self.field.name

    @property
    def type(self) -> str:
        return self.field.type


def _sort_key(row: Field):
    return (row.order or 0, row.field_id or 0)


def resolve_field_tree(db: Session, collection_id: int) -> List[FieldNode]:
    rows = (
        db.query(Field)
        .filter(Field.collection_id == int(collection_id), Field.deleted_at.is_(None))
        .all()
    )
    children_by_parent: Dict[Optional[int], List[Field]] = defaultdict(list)
    for row in rows:
        children_by_parent[row.parent_field_id].append(row)

    nodes = []
    for top in sorted(children_by_parent.get(None, []), key=_sort_key):
        children = sorted(children_by_parent.get(top.field_id, []), key=_sort_key)
        nodes.append(FieldNode(field=top, children=children))
    return nodes


def flatten_field_tree(nodes: List[FieldNode]) -> List[Field]:
    rows: List[Field] = []
    for node in nodes:
        rows.append(node.field)
        rows.extend(node.children)
    return rows


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def field_definition(row: Field) -> Dict[str, Any]:
    return {
        "id": row.field_id,
        "uuid": row.uuid,
        "type": row.type,
        "label": row.label,
        "name": row.name,
        "description": row.description,
        "placeholder": row.placeholder,
        "options": row.options or {},
        "validations": row.validations or {},
        "order": row.order,
        "parent_field_id": row.parent_field_id,
    }


def serialize_collection_schema(db: Session, collection: Collection) -> Dict[str, Any]:
    nodes = resolve_field_tree(db, collection.collection_id)
    return {
        "uuid": collection.uuid,
        "name": collection.name,
        "slug": collection.slug,
        "is_singleton": bool(collection.is_singleton),
        "created_at": _iso(collection.created_at),
        "updated_at": _iso(collection.updated_at),
        "fields": [field_definition(row) for row in flatten_field_tree(nodes)],
    }


# ---------------------------------------------------------------------------
# relation target id <-> slug
# ---------------------------------------------------------------------------

def externalize_relation_target(
    field_options: Optional[Dict[str, Any]],
    slug_by_collection_id: Dict[int, str],
) -> Dict[str, Any]:
    """relation.collection의 컬렉션 id를 slug로 바꾼 options 사본을 돌려줍니다."""
    options = copy.deepcopy(field_options) if isinstance(field_options, dict) else {}
    relation = options.get("relation")
    if not isinstance(relation, dict) or relation.get("collection") is None:
        return options

    target = relation["collection"]
    try:
        slug = slug_by_collection_id.get(int(target))
    except (TypeError, ValueError):
        slug = None
    if slug is None:
        logger.warning("[template] relation target %r not found in project, kept as is", target)
        return options
    relation["collection"] = slug
    return options


def internalize_relation_target(
    field_options: Optional[Dict[str, Any]],
    id_by_slug: Dict[str, int],
) -> Dict[str, Any]:
    """externalize_relation_target의 역변환. relation.type 기본값은 1입니다."""
    options = copy.deepcopy(field_options) if isinstance(field_options, dict) else {}
    relation = options.get("relation")
    if not isinstance(relation, dict):
        return options

    if relation.get("type") is None:
        relation["type"] = RELATION_SINGLE
    target = relation.get("collection")
    if isinstance(target, str) and target in id_by_slug:
        relation["collection"] = id_by_slug[target]
    elif target is not None:
        logger.warning("[template] relation target slug %r not found, kept as is", target)
    return options


# ---------------------------------------------------------------------------
# collection / field CRUD
# ---------------------------------------------------------------------------

def get_project(db: Session, project_id: int) -> Project:
    row = (
        db.query(Project)
        .filter(Project.project_id == int(project_id), Project.deleted_at.is_(None))
        .first()
    )
    if not row:
        raise HTTPException(status_code=404, detail="프로젝트를 찾을 수 없습니다.")
    return row


def get_collection_by_slug(db: Session, project_id: int, slug: str) -> Collection:
    row = (
        db.query(Collection)
        .filter(
            Collection.project_id == int(project_id),
            Collection.slug == slug,
            Collection.deleted_at.is_(None),
        )
        .first()
    )
    if not row:
        raise HTTPException(status_code=404, detail=f"컬렉션 '{slug}'을(를) 찾을 수 없습니다.")
    return row


def list_collections(db: Session, project_id: int) -> List[Collection]:
    return (
        db.query(Collection)
        .filter(Collection.project_id == int(project_id), Collection.deleted_at.is_(None))
        .order_by(Collection.order.asc(), Collection.collection_id.asc())
        .all()
    )


def _slug_taken(db: Session, project_id: int, slug: str) -> bool:
    return (
        db.query(Collection.collection_id)
        .filter(
            Collection.project_id == int(project_id),
            Collection.slug == slug,
            Collection.deleted_at.is_(None),
        )
        .first()
        is not None
    )


def _next_collection_order(db: Session, project_id: int) -> int:
    current = (
        db.query(func.max(Collection.order))
        .filter(Collection.project_id == int(project_id), Collection.deleted_at.is_(None))
        .scalar()
    )
    return (current or 0) + 1


def create_collection(db: Session, project: Project, data: CollectionCreate, *, commit: bool = True) -> Collection:
    slug = slugify(data.slug or data.name)
    if not slug:
        raise HTTPException(status_code=400, detail="컬렉션 slug를 만들 수 없습니다.")
    if _slug_taken(db, project.project_id, slug):
        raise HTTPException(status_code=409, detail=f"이미 사용 중인 컬렉션 slug입니다: {slug}")

    row = Collection(
        project_id=project.project_id,
        name=data.name,
        slug=slug,
        description=data.description,
        is_singleton=data.is_singleton,
        order=data.order if data.order is not None else _next_collection_order(db, project.project_id),
    )
    project.collections.append(row)
    db.flush()
    if commit:
        db.commit()
        db.refresh(row)
    return row


def _field_name_taken(db: Session, collection_id: int, parent_field_id: Optional[int], name: str) -> bool:
    query = db.query(Field.field_id).filter(
        Field.collection_id == int(collection_id),
        Field.name == name,
        Field.deleted_at.is_(None),
    )
    if parent_field_id is None:
        query = query.filter(Field.parent_field_id.is_(None))
    else:
        query = query.filter(Field.parent_field_id == int(parent_field_id))
    return query.first() is not None


def _next_field_order(db: Session, collection_id: int, parent_field_id: Optional[int]) -> int:
    query = db.query(func.max(Field.order)).filter(
        Field.collection_id == int(collection_id),
        Field.deleted_at.is_(None),
    )
    if parent_field_id is None:
        query = query.filter(Field.parent_field_id.is_(None))
    else:
        query = query.filter(Field.parent_field_id == int(parent_field_id))
    return (query.scalar() or 0) + 1


def create_field(db: Session, collection: Collection, data: FieldCreate, *, commit: bool = True) -> Field:
    if data.type not in FIELD_TYPES:
        raise HTTPException(status_code=400, detail=f"지원하지 않는 필드 타입입니다: {data.type}")

    parent = None
    if data.parent_field_id is not None:
        parent = (
            db.query(Field)
            .filter(
                Field.field_id == int(data.parent_field_id),
                Field.collection_id == collection.collection_id,
                Field.deleted_at.is_(None),
            )
            .first()
        )
        if not parent:
            raise HTTPException(status_code=404, detail="상위 그룹 필드를 찾을 수 없습니다.")
        if not parent.is_group:
            raise HTTPException(status_code=400, detail="그룹 필드 아래에만 하위 필드를 만들 수 있습니다.")
        if parent.parent_field_id is not None or data.type == "group":
            raise HTTPException(status_code=400, detail="그룹 필드는 한 단계까지만 중첩할 수 있습니다.")

    name = (data.name or "").strip() or slugify(data.label, separator="_")
    if not name:
        raise HTTPException(status_code=400, detail="필드 이름을 만들 수 없습니다.")
    parent_id = parent.field_id if parent is not None else None
    if _field_name_taken(db, collection.collection_id, parent_id, name):
        raise HTTPException(status_code=409, detail=f"이미 사용 중인 필드 이름입니다: {name}")

    row = Field(
        project_id=collection.project_id,
        type=data.type,
        label=data.label,
        name=name,
        description=data.description,
        placeholder=data.placeholder,
        options=dict(data.options or {}),
        validations=dict(data.validations or {}),
        order=data.order if data.order is not None else _next_field_order(db, collection.collection_id, parent_id),
    )
    collection.fields.append(row)
    if parent is not None:
        parent.children.append(row)
    db.flush()
    if commit:
        db.commit()
        db.refresh(row)
    return row
