"""Project 도메인의 SQLAlchemy 모델 정의입니다."""

import uuid

from sqlalchemy import JSON, Boolean, Column, DateTime, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from headless_cms.database import Base


class Project(Base):
    __tablename__ = "projects"

    project_id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(36), unique=True, nullable=False, default=lambda: str(uuid.uuid4()))
    name = Column(String(100), nullable=False)
    description = Column(Text)
    default_locale = Column(String(10), nullable=False, default="en")
    locales = Column(JSON, nullable=False, default=list)
    public_api = Column(Boolean, nullable=False, default=False)
    api_token = Column(String(80), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())
    deleted_at = Column(DateTime, nullable=True)

    collections = relationship(
        "Collection",
        back_populates="project",
        cascade="all, delete-orphan",
        order_by="Collection.order.asc(), Collection.collection_id.asc()",
    )
    webhooks = relationship("Webhook", back_populates="project", cascade="all, delete-orphan")

    @property
    def live_collections(self):
        return [row for row in self.collections if row.deleted_at is None]
