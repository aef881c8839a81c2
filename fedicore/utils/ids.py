# fedicore/utils/ids.py
from __future__ import annotations

import uuid


def new_id() -> str:
    """Return a fresh opaque object identifier (32 lowercase hex chars)."""
    return uuid.uuid4().hex


def is_valid_id(value: str | None) -> bool:
    if not value or len(value) != 32:
        return False
    try:
        int(value, 16)
    except ValueError:
        return False
    return value == value.lower()
