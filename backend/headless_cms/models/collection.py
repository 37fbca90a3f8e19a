"""컬렉션(콘텐츠 타입)과 동적 필드 정의 SQLAlchemy 모델입니다."""

import uuid

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    text,
)
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from headless_cms.database import Base


FIELD_TYPES = (
    "text",
    "longtext",
    "richtext",
    "slug",
    "email",
    "password",
    "number",
    "enumeration",
    "boolean",
    "color",
    "date",
    "time",
    "datetime",
    "media",
    "relation",
    "json",
    "group",
)


class Collection(Base):
    __tablename__ = "collections"

    collection_id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(36), unique=True, nullable=False, default=lambda: str(uuid.uuid4()))
    project_id = Column(Integer, ForeignKey("projects.project_id", ondelete="CASCADE"), nullable=False)
    name = Column(String(60), nullable=False)
    slug = Column(String(60), nullable=False)
    description = Column(String(255))
    order = Column(Integer, nullable=False, default=0)
    is_singleton = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())
    deleted_at = Column(DateTime, nullable=True)

    project = relationship("Project", back_populates="collections")
    fields = relationship(
        "Field",
        back_populates="collection",
        cascade="all, delete-orphan",
        order_by="Field.order.asc(), Field.field_id.asc()",
    )
    entries = relationship("ContentEntry", back_populates="collection", cascade="all, delete")

    __table_args__ = (
        Index(
            "uq_collection_project_slug",
            "project_id",
            "slug",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
    )


class Field(Base):
    __tablename__ = "collection_fields"

    field_id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(36), unique=True, nullable=False, default=lambda: str(uuid.uuid4()))
    project_id = Column(Integer, ForeignKey("projects.project_id", ondelete="CASCADE"), nullable=False)
    collection_id = Column(Integer, ForeignKey("collections.collection_id", ondelete="CASCADE"), nullable=False)
    parent_field_id = Column(Integer, ForeignKey("collection_fields.field_id", ondelete="CASCADE"), nullable=True)
    type = Column(String(30), nullable=False)
    label = Column(String(60), nullable=False)
    name = Column(String(60), nullable=False)
    description = Column(String(255))
    placeholder = Column(String(255))
    options = Column(JSON, nullable=False, default=dict)
    validations = Column(JSON, nullable=False, default=dict)
    order = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())
    deleted_at = Column(DateTime, nullable=True)

    collection = relationship("Collection", back_populates="fields")
    parent = relationship("Field", remote_side=[field_id], back_populates="children")
    children = relationship(
        "Field",
        back_populates="parent",
        cascade="all, delete",
        order_by="Field.order.asc(), Field.field_id.asc()",
    )

    __table_args__ = (
        # parent_field_id가 NULL인 최상위 필드의 중복은 서비스 레이어에서 검사한다.
        Index(
            "uq_field_collection_parent_name",
            "collection_id",
            "parent_field_id",
            "name",
            unique=True,
            sqlite_where=text("deleted_at IS NULL"),
            postgresql_where=text("deleted_at IS NULL"),
        ),
        Index("idx_field_collection_order", "collection_id", "parent_field_id", "order"),
    )

    @property
    def is_group(self) -> bool:
        return self.type == "group"
