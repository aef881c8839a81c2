from datetime import datetime
from typing import Any

from sqlalchemy import BigInteger, DateTime, String
from sqlalchemy.orm import DeclarativeBase
from sqlalchemy.types import TypeDecorator

from fedicore.utils.time import to_utc, utcnow

__all__ = ["Base", "ObjectID", "TZDateTime", "utcnow"]


class TZDateTime(TypeDecorator):
    """timestamptz that only ever hands out aware UTC datetimes.

    Values are converted to UTC on the way in, and naive values read back
    (e.g. from SQLite in tests) are tagged as UTC.
    """

    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(
        self, value: datetime | None, dialect: Any
    ) -> datetime | None:
        return to_utc(value)

    def process_result_value(
        self, value: datetime | None, dialect: Any
    ) -> datetime | None:
        return to_utc(value)


# Opaque identifiers are 32-char hex strings (see fedicore.utils.ids)
ObjectID = String(32)


class Base(DeclarativeBase):
    """Declarative base for all fedicore ORM models."""

    type_annotation_map = {
        int: BigInteger,
    }
