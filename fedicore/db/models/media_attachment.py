"""Media attachment ORM model.

This module defines the persisted form of a MediaAttachment. The domain
value (fedicore.media.types.MediaAttachment) is nested; the row is flat.
fedicore.media.mappers converts between the two.

Design principles:
- id is an opaque 32-char hex string generated at ingest
- account_id and status_id are SOFT references (lookup keys, no FK)
- processing_state is stored as its string value, never as a number
- Each asset is either local (path + url) or remote (remote_url), never both
- The row is only ever rewritten as a whole by a state compare-and-swap
"""

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    Enum,
    Float,
    Index,
    Integer,
    String,
    Text,
)
from sqlalchemy.orm import Mapped, mapped_column

from fedicore.db.base import Base, ObjectID, TZDateTime, utcnow
from fedicore.media.types import MediaKind, ProcessingState


class MediaAttachmentRow(Base):
    """
    Image, GIF, audio or video attached (or about to be) to a status.

    Lifecycle:
    - Created RECEIVED at ingest with staging_path pointing at the raw bytes
    - Claimed PROCESSING by exactly one worker; thumbnail_path reserved
    - PROCESSED with every derived column filled in a single UPDATE
    - ERROR keeps error_reason and staging_path until the row is deleted
    """

    __tablename__ = "media_attachments"

    # -------------------------------------------------------------------------
    # Identity and ownership
    # -------------------------------------------------------------------------

    id: Mapped[str] = mapped_column(ObjectID, primary_key=True)

    # Owning account. Soft reference: accounts live outside this package.
    account_id: Mapped[str] = mapped_column(ObjectID, nullable=False)

    # Status this attachment was posted with, NULL while unattached.
    status_id: Mapped[str | None] = mapped_column(ObjectID, nullable=True)

    # -------------------------------------------------------------------------
    # Kind and processing state
    # -------------------------------------------------------------------------

    kind: Mapped[MediaKind] = mapped_column(
        Enum(
            MediaKind,
            native_enum=False,
            length=16,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
    )

    processing_state: Mapped[ProcessingState] = mapped_column(
        Enum(
            ProcessingState,
            native_enum=False,
            length=16,
            values_callable=lambda e: [m.value for m in e],
        ),
        nullable=False,
        default=ProcessingState.RECEIVED,
    )

    # Diagnostic kept for ERROR rows.
    error_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Raw upload waiting for processing. Cleared once PROCESSED.
    staging_path: Mapped[str | None] = mapped_column(String(512), nullable=True)

    # -------------------------------------------------------------------------
    # Original asset
    # -------------------------------------------------------------------------

    file_path: Mapped[str | None] = mapped_column(String(512), nullable=True)
    file_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_remote_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    file_content_type: Mapped[str | None] = mapped_column(String(255), nullable=True)
    file_size: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    file_updated_at: Mapped[datetime | None] = mapped_column(TZDateTime, nullable=True)

    # -------------------------------------------------------------------------
    # Thumbnail asset
    # -------------------------------------------------------------------------

    thumbnail_path: Mapped[str | None] = mapped_column(String(512), nullable=True)
    thumbnail_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    thumbnail_remote_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    thumbnail_content_type: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    thumbnail_size: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    thumbnail_updated_at: Mapped[datetime | None] = mapped_column(
        TZDateTime, nullable=True
    )

    # -------------------------------------------------------------------------
    # Derived metadata
    # -------------------------------------------------------------------------

    original_width: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    original_height: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Seconds; NULL for still media.
    original_duration: Mapped[float | None] = mapped_column(Float, nullable=True)

    small_width: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    small_height: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    # Focus point in [-1, 1] on each axis; both NULL when unset.
    focus_x: Mapped[float | None] = mapped_column(Float, nullable=True)
    focus_y: Mapped[float | None] = mapped_column(Float, nullable=True)

    # 16 hex chars of difference hash. NULL for audio/video.
    content_hash: Mapped[str | None] = mapped_column(String(16), nullable=True)

    # Alt text.
    description: Mapped[str | None] = mapped_column(Text, nullable=True)

    # -------------------------------------------------------------------------
    # Timestamps
    # -------------------------------------------------------------------------

    created_at: Mapped[datetime] = mapped_column(
        TZDateTime, nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        TZDateTime, nullable=False, default=utcnow
    )

    # -------------------------------------------------------------------------
    # Constraints and indexes
    # -------------------------------------------------------------------------

    __table_args__ = (
        CheckConstraint(
            "file_path IS NULL OR file_remote_url IS NULL",
            name="ck_media_attachments_file_location",
        ),
        CheckConstraint(
            "thumbnail_path IS NULL OR thumbnail_remote_url IS NULL",
            name="ck_media_attachments_thumbnail_location",
        ),
        # Sweeper: oldest RECEIVED first
        Index("ix_media_attachments_state_created", "processing_state", "created_at"),
        Index("ix_media_attachments_account_id", "account_id"),
        Index("ix_media_attachments_status_id", "status_id"),
    )

    def __repr__(self) -> str:
        return (
            f"<MediaAttachmentRow(id='{self.id}', "
            f"state='{self.processing_state.value}')>"
        )
