"""프로젝트 웹훅 구독과 전송 로그 SQLAlchemy 모델입니다."""

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from headless_cms.database import Base


class Webhook(Base):
    __tablename__ = "webhooks"

    webhook_id = Column(Integer, primary_key=True, autoincrement=True)
    project_id = Column(Integer, ForeignKey("projects.project_id", ondelete="CASCADE"), nullable=False)
    name = Column(String(100), nullable=False)
    description = Column(String(255))
    url = Column(String(500), nullable=False)
    secret = Column(String(255), nullable=True)
    events = Column(JSON, nullable=False, default=list)
    sources = Column(JSON, nullable=False, default=list)  # cms/api
    collection_ids = Column(JSON, nullable=False, default=list)  # 비어 있으면 전체 컬렉션
    status = Column(Boolean, nullable=False, default=True)
    created_by = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())

    project = relationship("Project", back_populates="webhooks")
    logs = relationship("WebhookLog", back_populates="webhook", cascade="all, delete-orphan")


class WebhookLog(Base):
    __tablename__ = "webhook_logs"

    log_id = Column(Integer, primary_key=True, autoincrement=True)
    webhook_id = Column(Integer, ForeignKey("webhooks.webhook_id", ondelete="CASCADE"), nullable=False)
    project_uuid = Column(String(36), nullable=False)
    action = Column(String(50), nullable=False)
    url = Column(String(500), nullable=False)
    status = Column(String(20), nullable=False)  # HTTP status code or "error"
    request = Column(JSON, nullable=True)
    response = Column(Text, nullable=True)
    created_at = Column(DateTime, server_default=func.now())

    webhook = relationship("Webhook", back_populates="logs")

    __table_args__ = (
        Index("idx_webhook_log_webhook", "webhook_id", "created_at"),
    )
