"""MediaAttachment <-> MediaAttachmentRow conversion."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from fedicore.db.models import MediaAttachmentRow
from fedicore.media.types import (
    AssetLocation,
    FileMeta,
    Focus,
    LocalAsset,
    MediaAsset,
    MediaAttachment,
    RemoteAsset,
    VariantMeta,
)


def _location(
    path: str | None, url: str | None, remote_url: str | None
) -> AssetLocation | None:
    if path is not None:
        return LocalAsset(path=path, url=url or "")
    if remote_url is not None:
        return RemoteAsset(remote_url)
    return None


def _asset(
    path: str | None,
    url: str | None,
    remote_url: str | None,
    content_type: str | None,
    size: int | None,
    updated_at: datetime | None,
) -> MediaAsset:
    return MediaAsset(
        location=_location(path, url, remote_url),
        content_type=content_type,
        byte_size=size or 0,
        updated_at=updated_at,
    )


def map_row(row: MediaAttachmentRow) -> MediaAttachment:
    """Convert a database row to the domain value.

    Args:
        row: Loaded MediaAttachmentRow

    Returns:
        Frozen MediaAttachment (invariants checked on construction)
    """
    thumbnail = _asset(
        row.thumbnail_path,
        row.thumbnail_url,
        row.thumbnail_remote_url,
        row.thumbnail_content_type,
        row.thumbnail_size,
        row.thumbnail_updated_at,
    )

    focus = None
    if row.focus_x is not None and row.focus_y is not None:
        focus = Focus(row.focus_x, row.focus_y)

    return MediaAttachment(
        id=row.id,
        account_id=row.account_id,
        kind=row.kind,
        processing_state=row.processing_state,
        original=_asset(
            row.file_path,
            row.file_url,
            row.file_remote_url,
            row.file_content_type,
            row.file_size,
            row.file_updated_at,
        ),
        thumbnail=thumbnail if thumbnail.is_stored else None,
        meta=FileMeta(
            original=VariantMeta.from_dimensions(
                row.original_width or 0,
                row.original_height or 0,
                duration=row.original_duration,
            ),
            small=VariantMeta.from_dimensions(
                row.small_width or 0, row.small_height or 0
            ),
            focus=focus,
        ),
        content_hash=row.content_hash,
        description=row.description,
        status_id=row.status_id,
        staging_path=row.staging_path,
        error_reason=row.error_reason,
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


def _asset_columns(prefix: str, asset: MediaAsset | None) -> dict[str, Any]:
    location = asset.location if asset is not None else None
    return {
        f"{prefix}_path": location.path if isinstance(location, LocalAsset) else None,
        f"{prefix}_url": location.url if isinstance(location, LocalAsset) else None,
        f"{prefix}_remote_url": (
            location.remote_url if isinstance(location, RemoteAsset) else None
        ),
        f"{prefix}_content_type": asset.content_type if asset is not None else None,
        f"{prefix}_size": asset.byte_size if asset is not None else 0,
        f"{prefix}_updated_at": asset.updated_at if asset is not None else None,
    }


def attachment_values(attachment: MediaAttachment) -> dict[str, Any]:
    """Flatten a MediaAttachment into column values.

    Every column is present, so the dict can drive both INSERT and a
    whole-row UPDATE.
    """
    meta = attachment.meta
    focus = meta.focus
    return {
        "id": attachment.id,
        "account_id": attachment.account_id,
        "status_id": attachment.status_id,
        "kind": attachment.kind,
        "processing_state": attachment.processing_state,
        "error_reason": attachment.error_reason,
        "staging_path": attachment.staging_path,
        **_asset_columns("file", attachment.original),
        **_asset_columns("thumbnail", attachment.thumbnail),
        "original_width": meta.original.width,
        "original_height": meta.original.height,
        "original_duration": meta.original.duration,
        "small_width": meta.small.width,
        "small_height": meta.small.height,
        "focus_x": focus.x if focus is not None else None,
        "focus_y": focus.y if focus is not None else None,
        "content_hash": attachment.content_hash,
        "description": attachment.description,
        "created_at": attachment.created_at,
        "updated_at": attachment.updated_at,
    }


def map_attachment(attachment: MediaAttachment) -> MediaAttachmentRow:
    """Convert a domain value to a new ORM instance (not yet added to a session)."""
    return MediaAttachmentRow(**attachment_values(attachment))
