"""서비스 레이어 패키지 초기화 모듈입니다."""

from headless_cms.services import (
    auth_service,
    asset_service,
    field_codec,
    schema_service,
    entry_serializer,
    webhook_service,
    content_service,
    template_builder,
    template_importer,
)
