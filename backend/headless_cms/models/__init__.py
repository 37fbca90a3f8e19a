"""SQLAlchemy 모델 패키지 초기화 모듈입니다."""

from headless_cms.models.user import User
from headless_cms.models.project import Project
from headless_cms.models.collection import Collection, Field
from headless_cms.models.content import (
    ContentEntry,
    ContentFieldGroup,
    ContentFieldValue,
    ContentMediaRelation,
    ContentRelationFieldRelation,
)
from headless_cms.models.asset import Asset, AssetMetadata
from headless_cms.models.template import CollectionTemplate, CollectionTemplateField, ProjectTemplate
from headless_cms.models.webhook import Webhook, WebhookLog

__all__ = [
    "User",
    "Project",
    "Collection", "Field",
    "ContentEntry", "ContentFieldGroup", "ContentFieldValue",
    "ContentMediaRelation", "ContentRelationFieldRelation",
    "Asset", "AssetMetadata",
    "CollectionTemplate", "CollectionTemplateField", "ProjectTemplate",
    "Webhook", "WebhookLog",
]
