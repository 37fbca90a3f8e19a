"""에셋(미디어 파일) 메타데이터 SQLAlchemy 모델입니다. 실제 파일 저장소는 다루지 않습니다."""

import uuid

from sqlalchemy import BigInteger, Column, DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func

from headless_cms.database import Base


class Asset(Base):
    __tablename__ = "assets"

    asset_id = Column(Integer, primary_key=True, autoincrement=True)
    uuid = Column(String(36), unique=True, nullable=False, default=lambda: str(uuid.uuid4()))
    project_id = Column(Integer, ForeignKey("projects.project_id", ondelete="CASCADE"), nullable=False)
    filename = Column(String(255), nullable=False)
    original_filename = Column(String(255), nullable=False)
    mime_type = Column(String(100), nullable=False)
    extension = Column(String(20))
    size = Column(BigInteger, nullable=False, default=0)
    disk = Column(String(30), nullable=False, default="local")
    path = Column(String(500), nullable=False)
    created_by = Column(Integer, ForeignKey("users.user_id", ondelete="SET NULL"), nullable=True)
    created_at = Column(DateTime, server_default=func.now())
    updated_at = Column(DateTime, onupdate=func.now())
    deleted_at = Column(DateTime, nullable=True)

    metadata_row = relationship("AssetMetadata", back_populates="asset", uselist=False, cascade="all, delete-orphan")

    __table_args__ = (
        Index("idx_asset_project", "project_id"),
    )

    @property
    def is_image(self) -> bool:
        return str(self.mime_type or "").startswith("image/")


class AssetMetadata(Base):
    __tablename__ = "asset_metadata"

    asset_metadata_id = Column(Integer, primary_key=True, autoincrement=True)
    asset_id = Column(Integer, ForeignKey("assets.asset_id", ondelete="CASCADE"), nullable=False, unique=True)
    alt = Column(String(255))
    caption = Column(String(500))
    author = Column(String(100))
    copyright = Column(String(255))
    width = Column(Integer)
    height = Column(Integer)

    asset = relationship("Asset", back_populates="metadata_row")
