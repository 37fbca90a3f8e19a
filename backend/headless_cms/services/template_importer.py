"""템플릿 문서를 프로젝트에 적용(가져오기)하는 서비스입니다.

컬렉션과 필드를 만들고 관계 대상 slug를 새 컬렉션 id로 바꾼 뒤,
데모 엔트리를 만들고 마지막에 심볼릭 id -> 새 entry_id 매핑으로 관계 값을 채웁니다.
전체 적용은 하나의 트랜잭션입니다.
"""

import logging
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple, Union

from fastapi import HTTPException
from pydantic import ValidationError
from sqlalchemy import func
from sqlalchemy.orm import Session

from headless_cms.config import settings
from headless_cms.models.collection import Collection, Field
from headless_cms.models.content import ENTRY_STATUSES, ContentEntry, ContentFieldGroup
from headless_cms.models.project import Project
from headless_cms.models.template import CollectionTemplate
from headless_cms.schemas.collection import CollectionCreate, FieldCreate
from headless_cms.schemas.template import ProjectTemplateDocument, TemplateFieldDoc
from headless_cms.services.content_service import EntryWriter, run_in_transaction
from headless_cms.services.schema_service import (
    create_collection,
    create_field,
    internalize_relation_target,
    resolve_field_tree,
)

logger = logging.getLogger(__name__)

PendingRelation = Tuple[ContentEntry, Field, Optional[ContentFieldGroup], Any]


class TemplateEntryWriter(EntryWriter):
    """관계 값은 모든 데모 엔트리가 만들어진 뒤 채우도록 미뤄두고, 미디어 값은 건너뜁니다."""

    def __init__(self, db: Session, entry: ContentEntry, pending: List[PendingRelation]):
        super().__init__(db, entry)
        self.pending = pending

    def write_field(self, field: Field, value: Any, group: Optional[ContentFieldGroup] = None) -> None:
        if field.type == "relation":
            if value is not None:
                self.pending.append((self.entry, field, group, value))
            return
        if field.type == "media":
            return
        super().write_field(field, value, group)


def parse_document(document: Union[Dict[str, Any], ProjectTemplateDocument]) -> ProjectTemplateDocument:
    if isinstance(document, ProjectTemplateDocument):
        return document
    try:
        return ProjectTemplateDocument.model_validate(document)
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=f"템플릿 문서 형식이 올바르지 않습니다: {exc.errors()}")


def _project_slug_map(db: Session, project: Project) -> Dict[str, int]:
    rows = (
        db.query(Collection.slug, Collection.collection_id)
        .filter(Collection.project_id == project.project_id, Collection.deleted_at.is_(None))
        .all()
    )
    return {slug: int(collection_id) for slug, collection_id in rows}


def _field_create(doc: TemplateFieldDoc, order: int, id_by_slug: Dict[str, int], parent_field_id=None) -> FieldCreate:
    options = doc.options
    if doc.type == "relation":
        options = internalize_relation_target(options, id_by_slug)
    return FieldCreate(
        type=doc.type,
        label=doc.label,
        name=doc.name,
        description=doc.description,
        placeholder=doc.placeholder,
        options=options,
        validations=doc.validations,
        order=order,
        parent_field_id=parent_field_id,
    )


def _create_fields(db: Session, collection: Collection, field_docs: List[TemplateFieldDoc], id_by_slug: Dict[str, int]) -> None:
    for position, doc in enumerate(field_docs, start=1):
        parent = create_field(db, collection, _field_create(doc, position, id_by_slug), commit=False)
        for child_position, child_doc in enumerate(doc.children, start=1):
            create_field(
                db,
                collection,
                _field_create(child_doc, child_position, id_by_slug, parent_field_id=parent.field_id),
                commit=False,
            )


def _entry_locale(project: Project, locale: Optional[str]) -> str:
    allowed = set(project.locales or []) | {project.default_locale}
    if locale and locale in allowed:
        return locale
    if locale:
        logger.warning("[template] demo entry locale %r not enabled, using %s", locale, project.default_locale)
    return project.default_locale


def _symbolic_ids(value: Any) -> List[str]:
    items = value if isinstance(value, list) else [value]
    flat: List[str] = []
    for item in items:
        if isinstance(item, list):
            flat.extend(str(sub) for sub in item if sub is not None)
        elif item is not None:
            flat.append(str(item))
    return flat


def _apply_document(
    db: Session,
    project: Project,
    doc: ProjectTemplateDocument,
    with_demo_data: bool,
) -> Dict[str, Any]:
    start_order = (
        db.query(func.max(Collection.order))
        .filter(Collection.project_id == project.project_id, Collection.deleted_at.is_(None))
        .scalar()
        or 0
    )

    created: Dict[str, Collection] = {}
    for position, collection_doc in enumerate(doc.collections, start=1):
        created[collection_doc.slug] = create_collection(
            db,
            project,
            CollectionCreate(
                name=collection_doc.name,
                slug=collection_doc.slug,
                is_singleton=collection_doc.is_singleton,
                order=start_order + position,
            ),
            commit=False,
        )

    id_by_slug = _project_slug_map(db, project)
    for collection_doc in doc.collections:
        _create_fields(db, created[collection_doc.slug], collection_doc.fields, id_by_slug)
    db.flush()

    entry_count = 0
    relation_count = 0
    if with_demo_data and doc.demo_data:
        symbolic_to_entry: Dict[str, int] = {}
        pending: List[PendingRelation] = []
        for demo in doc.demo_data:
            collection = created.get(demo.collection)
            if collection is None:
                logger.warning("[template] demo data for unknown collection %r skipped", demo.collection)
                continue
            nodes = resolve_field_tree(db, collection.collection_id)
            for entry_doc in demo.entries:
                status = entry_doc.status if entry_doc.status in ENTRY_STATUSES else "draft"
                entry = ContentEntry(
                    project_id=project.project_id,
                    locale=_entry_locale(project, entry_doc.locale),
                    status=status,
                    published_at=datetime.utcnow() if status == "published" else None,
                )
                collection.entries.append(entry)
                db.flush()
                symbolic_to_entry.setdefault(entry_doc.id, int(entry.entry_id))
                TemplateEntryWriter(db, entry, pending).write(nodes, entry_doc.fields)
                entry_count += 1
        db.flush()

        for entry, field, group, value in pending:
            resolved = [symbolic_to_entry[s] for s in _symbolic_ids(value) if s in symbolic_to_entry]
            resolved = list(dict.fromkeys(resolved))
            if not resolved:
                continue
            EntryWriter(db, entry).write_field(field, resolved, group=group)
            relation_count += len(resolved)
        db.flush()

    logger.info(
        "[template] applied %s to project #%s (%d collections, %d entries, %d relations)",
        doc.slug, project.project_id, len(created), entry_count, relation_count,
    )
    return {
        "project_id": project.project_id,
        "collections": list(created.keys()),
        "entries": entry_count,
        "relations": relation_count,
    }


def apply_project_template(
    db: Session,
    project: Project,
    document: Union[Dict[str, Any], ProjectTemplateDocument],
    with_demo_data: bool = True,
) -> Dict[str, Any]:
    doc = parse_document(document)
    return run_in_transaction(db, lambda: _apply_document(db, project, doc, with_demo_data))


def create_project_from_template(
    db: Session,
    document: Union[Dict[str, Any], ProjectTemplateDocument],
    *,
    name: Optional[str] = None,
    description: Optional[str] = None,
    with_demo_data: bool = True,
) -> Project:
    doc = parse_document(document)
    default_locale = doc.default_locale or settings.DEFAULT_LOCALE
    locales = list(doc.locales or [default_locale])
    if default_locale not in locales:
        locales.insert(0, default_locale)

    def work():
        project = Project(
            name=name or doc.name,
            description=description if description is not None else doc.description,
            default_locale=default_locale,
            locales=locales,
            public_api=bool(doc.public_api),
        )
        db.add(project)
        db.flush()
        _apply_document(db, project, doc, with_demo_data)
        return project

    project = run_in_transaction(db, work)
    db.refresh(project)
    return project


def apply_collection_template(
    db: Session,
    project: Project,
    template: CollectionTemplate,
    *,
    name: Optional[str] = None,
    slug: Optional[str] = None,
) -> Collection:
    def work():
        collection = create_collection(
            db,
            project,
            CollectionCreate(
                name=name or template.name,
                slug=slug or template.slug,
                description=template.description,
                is_singleton=bool(template.is_singleton),
            ),
            commit=False,
        )
        id_by_slug = _project_slug_map(db, project)
        docs = [
            TemplateFieldDoc(
                type=row.type,
                label=row.label,
                name=row.name,
                description=row.description,
                placeholder=row.placeholder,
                options=row.options or {},
                validations=row.validations or {},
                children=[
                    TemplateFieldDoc(
                        type=child.type,
                        label=child.label,
                        name=child.name,
                        description=child.description,
                        placeholder=child.placeholder,
                        options=child.options or {},
                        validations=child.validations or {},
                    )
                    for child in row.children
                ],
            )
            for row in template.top_level_fields
        ]
        _create_fields(db, collection, docs, id_by_slug)
        db.flush()
        return collection

    collection = run_in_transaction(db, work)
    db.refresh(collection)
    return collection
