"""fedicore database models.

All models use SQLAlchemy 2.0 syntax and target PostgreSQL.
"""

from fedicore.db.base import Base
from fedicore.db.models.emoji import CustomEmoji
from fedicore.db.models.media_attachment import MediaAttachmentRow

__all__ = [
    "Base",
    "CustomEmoji",
    "MediaAttachmentRow",
]
