"""에셋을 API 노출용 요약 형태로 변환하는 읽기 전용 서비스입니다."""

from typing import Any, Dict, Optional

from sqlalchemy.orm import Session

from headless_cms.config import settings
from headless_cms.models.asset import Asset

SIZE_UNITS = ("B", "KB", "MB", "GB", "TB")


def format_size(size: Optional[int]) -> str:
    value = float(size or 0)
    unit_index = 0
    while value >= 1024 and unit_index < len(SIZE_UNITS) - 1:
        value /= 1024
        unit_index += 1
    if unit_index == 0:
        return f"{int(value)} B"
    return f"{value:.1f} {SIZE_UNITS[unit_index]}".replace(".0 ", " ")


def asset_url(asset: Asset) -> str:
    base = settings.ASSET_BASE_URL.rstrip("/")
    return f"{base}/{str(asset.path).lstrip('/')}"


def thumbnail_url(asset: Asset) -> Optional[str]:
    if not asset.is_image:
        return None
    base = settings.ASSET_BASE_URL.rstrip("/")
    return f"{base}/{settings.THUMBNAIL_PREFIX}/{str(asset.path).lstrip('/')}"


def _metadata(asset: Asset) -> Optional[Dict[str, Any]]:
    row = asset.metadata_row
    if row is None:
        return None
    return {
        "alt": row.alt,
        "caption": row.caption,
        "author": row.author,
        "copyright": row.copyright,
        "width": row.width,
        "height": row.height,
    }


def resolve_asset(asset: Asset) -> Dict[str, Any]:
    return {
        "uuid": asset.uuid,
        "filename": asset.original_filename,
        "mime_type": asset.mime_type,
        "size": format_size(asset.size),
        "url": asset_url(asset),
        "thumbnail_url": thumbnail_url(asset),
        "metadata": _metadata(asset),
    }


def get_project_assets(db: Session, project_id: int, asset_ids: list[int]) -> dict[int, Asset]:
    if not asset_ids:
        return {}
    rows = (
        db.query(Asset)
        .filter(
            Asset.project_id == project_id,
            Asset.asset_id.in_(asset_ids),
            Asset.deleted_at.is_(None),
        )
        .all()
    )
    return {int(row.asset_id): row for row in rows}
