"""콘텐츠 엔트리와 EAV 필드 값 저장소 SQLAlchemy 모델입니다."""

import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    Date,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from headless_cms.database import Base


ENTRY_STATUSES = ("draft", "published")
RELATED_TYPE_ENTRY = "content_entry"


class ContentEntry(Base):
    __tablename__ = "content_entries"

    entry_id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(36), unique=True, nullable=False, default=lambda: str(uuid.uuid4()))
    project_id = Column(Integer, ForeignKey("projects.project_id", ondelete="CASCADE"), nullable=False)
    collection_id = Column(Integer, ForeignKey("collections.collection_id", ondelete="CASCADE"), nullable=False)
    locale = Column(String(10), nullable=False, default="en")
    status = Column(String(20), nullable=False, default="draft")  # draft/published
    published_at = Column(DateTime, nullable=True)
    translation_group_id = Column(String(36), nullable=True)
    created_by = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    updated_by = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())
    deleted_at = Column(DateTime, nullable=True)

    collection = relationship("Collection", back_populates="entries")
    field_values = relationship(
        "ContentFieldValue",
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="ContentFieldValue.sort_order.asc(), ContentFieldValue.value_id.asc()",
    )
    field_groups = relationship(
        "ContentFieldGroup",
        back_populates="entry",
        cascade="all, delete-orphan",
        order_by="ContentFieldGroup.sort_order.asc(), ContentFieldGroup.group_instance_id.asc()",
    )

    __table_args__ = (
        Index("idx_entry_collection_status", "collection_id", "status", "locale"),
        Index("idx_entry_translation_group", "translation_group_id"),
    )


class ContentFieldGroup(Base):
    """그룹 필드의 반복 인스턴스 1건."""

    __tablename__ = "content_field_groups"

    group_instance_id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(36), unique=True, nullable=False, default=lambda: str(uuid.uuid4()))
    project_id = Column(Integer, ForeignKey("projects.project_id", ondelete="CASCADE"), nullable=False)
    collection_id = Column(Integer, ForeignKey("collections.collection_id", ondelete="CASCADE"), nullable=False)
    entry_id = Column(Integer, ForeignKey("content_entries.entry_id", ondelete="CASCADE"), nullable=False)
    field_id = Column(Integer, ForeignKey("collection_fields.field_id", ondelete="CASCADE"), nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, server_default=func.now())

    entry = relationship("ContentEntry", back_populates="field_groups")
    field = relationship("Field")
    values = relationship(
        "ContentFieldValue",
        back_populates="group_instance",
        cascade="all, delete",
        order_by="ContentFieldValue.sort_order.asc(), ContentFieldValue.value_id.asc()",
    )

    __table_args__ = (
        Index("idx_field_group_entry_field", "entry_id", "field_id", "sort_order"),
    )


class ContentFieldValue(Base):
    """EAV 값 행. field_type에 따라 저장 컬럼 하나(또는 범위 쌍)만 채워진다."""

    __tablename__ = "content_field_values"

    value_id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.project_id", ondelete="CASCADE"), nullable=False)
    collection_id = Column(Integer, ForeignKey("collections.collection_id", ondelete="CASCADE"), nullable=False)
    entry_id = Column(Integer, ForeignKey("content_entries.entry_id", ondelete="CASCADE"), nullable=False)
    field_id = Column(Integer, ForeignKey("collection_fields.field_id", ondelete="CASCADE"), nullable=False)
    group_instance_id = Column(
        Integer,
        ForeignKey("content_field_groups.group_instance_id", ondelete="CASCADE"),
        nullable=True,
    )
    field_type = Column(String(30), nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)
    text_value = Column(Text, nullable=True)
    number_value = Column(Numeric(20, 6), nullable=True)
    boolean_value = Column(Boolean, nullable=True)
    date_value = Column(Date, nullable=True)
    date_value_end = Column(Date, nullable=True)
    datetime_value = Column(DateTime, nullable=True)
    datetime_value_end = Column(DateTime, nullable=True)
    json_value = Column(JSON, nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())

    entry = relationship("ContentEntry", back_populates="field_values")
    field = relationship("Field")
    group_instance = relationship("ContentFieldGroup", back_populates="values")
    media_relations = relationship(
        "ContentMediaRelation",
        back_populates="field_value",
        cascade="all, delete-orphan",
        order_by="ContentMediaRelation.sort_order.asc(), ContentMediaRelation.media_relation_id.asc()",
    )
    value_relations = relationship(
        "ContentRelationFieldRelation",
        back_populates="field_value",
        cascade="all, delete-orphan",
        order_by="ContentRelationFieldRelation.sort_order.asc(), ContentRelationFieldRelation.relation_id.asc()",
    )

    __table_args__ = (
        Index("idx_field_value_entry_field", "entry_id", "field_id", "sort_order"),
        Index("idx_field_value_group", "group_instance_id"),
        Index("idx_field_value_type_number", "field_type", "number_value"),
        Index("idx_field_value_type_date", "field_type", "date_value"),
    )


class ContentMediaRelation(Base):
    __tablename__ = "content_media_relations"

    media_relation_id = Column(Integer, primary_key=True, autoincrement=True)
    value_id = Column(Integer, ForeignKey("content_field_values.value_id", ondelete="CASCADE"), nullable=False)
    asset_id = Column(Integer, ForeignKey("assets.asset_id", ondelete="CASCADE"), nullable=False)
    sort_order = Column(Integer, nullable=False, default=0)

    field_value = relationship("ContentFieldValue", back_populates="media_relations")
    asset = relationship("Asset")


class ContentRelationFieldRelation(Base):
    __tablename__ = "content_relation_field_relations"

    relation_id = Column(Integer, primary_key=True, autoincrement=True)
    value_id = Column(Integer, ForeignKey("content_field_values.value_id", ondelete="CASCADE"), nullable=False)
    related_id = Column(Integer, ForeignKey("content_entries.entry_id", ondelete="CASCADE"), nullable=False)
    related_type = Column(String(40), nullable=False, default=RELATED_TYPE_ENTRY)
    sort_order = Column(Integer, nullable=False, default=0)

    field_value = relationship("ContentFieldValue", back_populates="value_relations")
    related = relationship("ContentEntry", foreign_keys=[related_id])

    __table_args__ = (
        Index("idx_relation_related", "related_type", "related_id"),
    )
