"""이식 가능한 컬렉션/프로젝트 템플릿 저장 모델입니다.

관계 필드의 대상 컬렉션은 숫자 id가 아닌 slug로 저장되므로 어떤 프로젝트에도 적용할 수 있습니다.
"""

import uuid

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from headless_cms.database import Base


class CollectionTemplate(Base):
    __tablename__ = "collection_templates"

    template_id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(36), unique=True, nullable=False, default=lambda: str(uuid.uuid4()))
    name = Column(String(60), nullable=False)
    slug = Column(String(60), unique=True, nullable=False)
    description = Column(String(255))
    is_singleton = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())

    fields = relationship(
        "CollectionTemplateField",
        back_populates="template",
        cascade="all, delete-orphan",
        order_by="CollectionTemplateField.order.asc(), CollectionTemplateField.template_field_id.asc()",
    )

    @property
    def top_level_fields(self):
        return [row for row in self.fields if row.parent_template_field_id is None]


class CollectionTemplateField(Base):
    __tablename__ = "collection_template_fields"

    template_field_id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(36), unique=True, nullable=False, default=lambda: str(uuid.uuid4()))
    template_id = Column(Integer, ForeignKey("collection_templates.template_id", ondelete="CASCADE"), nullable=False)
    parent_template_field_id = Column(
        Integer,
        ForeignKey("collection_template_fields.template_field_id", ondelete="CASCADE"),
        nullable=True,
    )
    type = Column(String(30), nullable=False)
    label = Column(String(60), nullable=False)
    name = Column(String(60), nullable=False)
    description = Column(String(255))
    placeholder = Column(String(255))
    order = Column(Integer, nullable=True)
    options = Column(JSON, nullable=False, default=dict)
    validations = Column(JSON, nullable=False, default=dict)

    template = relationship("CollectionTemplate", back_populates="fields")
    parent = relationship("CollectionTemplateField", remote_side=[template_field_id], back_populates="children")
    children = relationship(
        "CollectionTemplateField",
        back_populates="parent",
        order_by="CollectionTemplateField.order.asc(), CollectionTemplateField.template_field_id.asc()",
    )


class ProjectTemplate(Base):
    __tablename__ = "project_templates"

    template_id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(36), unique=True, nullable=False, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False)
    slug = Column(String(100), unique=True, nullable=False)
    description = Column(String(255))
    has_demo_data = Column(Boolean, nullable=False, default=False)
    data = Column(JSON, nullable=False)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())
