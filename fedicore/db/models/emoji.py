"""Custom emoji ORM model.

Custom emoji are referenced from status text as :shortcode:. Each row is
one image, either uploaded locally (domain "") or learned from a remote
instance (domain = that instance's host).

Design principles:
- (shortcode, domain) is unique: one :blobcat: per instance
- shortcode is stored lowercased and matches [a-z0-9_]+
- Local emoji are served from our storage (image_url); remote emoji keep the
  origin's URL (image_remote_url)
- Disabling hides an emoji from resolution without deleting it
"""

from datetime import datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    CheckConstraint,
    Index,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column

from fedicore.db.base import Base, ObjectID, TZDateTime, utcnow


class CustomEmoji(Base):
    """
    Custom emoji usable in status text.

    An emoji has a full image (possibly animated) and a static PNG rendition
    for clients that disable animation.
    """

    __tablename__ = "custom_emojis"

    # -------------------------------------------------------------------------
    # Identity
    # -------------------------------------------------------------------------

    id: Mapped[str] = mapped_column(ObjectID, primary_key=True)

    # Name without colons, e.g. "blobcat".
    shortcode: Mapped[str] = mapped_column(String(255), nullable=False)

    # Host of the owning instance; empty string for local emoji.
    # Empty rather than NULL so the unique constraint covers local emoji.
    domain: Mapped[str] = mapped_column(String(255), nullable=False, default="")

    # ActivityPub id of the emoji.
    uri: Mapped[str] = mapped_column(Text, nullable=False, unique=True)

    # -------------------------------------------------------------------------
    # Image
    # -------------------------------------------------------------------------

    image_remote_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_static_remote_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_static_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    image_path: Mapped[str | None] = mapped_column(String(512), nullable=True)
    image_static_path: Mapped[str | None] = mapped_column(String(512), nullable=True)
    image_content_type: Mapped[str | None] = mapped_column(String(255), nullable=True)
    image_static_content_type: Mapped[str | None] = mapped_column(
        String(255), nullable=True
    )
    image_file_size: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    image_static_file_size: Mapped[int] = mapped_column(
        BigInteger, nullable=False, default=0
    )
    image_updated_at: Mapped[datetime | None] = mapped_column(TZDateTime, nullable=True)

    # -------------------------------------------------------------------------
    # Moderation and presentation
    # -------------------------------------------------------------------------

    # Disabled emoji are not rendered and not offered to clients.
    disabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    visible_in_picker: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=True
    )

    # Soft reference to an emoji category.
    category_id: Mapped[str | None] = mapped_column(ObjectID, nullable=True)

    # -------------------------------------------------------------------------
    # Timestamps
    # -------------------------------------------------------------------------

    created_at: Mapped[datetime] = mapped_column(
        TZDateTime, nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        TZDateTime, nullable=False, default=utcnow, onupdate=utcnow
    )

    # -------------------------------------------------------------------------
    # Constraints and indexes
    # -------------------------------------------------------------------------

    __table_args__ = (
        UniqueConstraint("shortcode", "domain", name="uq_custom_emojis_shortcode_domain"),
        CheckConstraint(
            "(domain = '' AND image_url IS NOT NULL) "
            "OR (domain <> '' AND image_remote_url IS NOT NULL)",
            name="ck_custom_emojis_image_location",
        ),
        Index("ix_custom_emojis_domain", "domain"),
    )

    @property
    def is_local(self) -> bool:
        return self.domain == ""

    def __repr__(self) -> str:
        return f"<CustomEmoji(shortcode='{self.shortcode}', domain='{self.domain}')>"
