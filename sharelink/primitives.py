"""
Common primitives shared by the repository, policy and lifecycle layers.
"""

from __future__ import annotations

import re
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

LINK_ID_PATTERN = re.compile(r"[0-9a-f]{32}")


def generate_link_id() -> str:
    """Generate an opaque, non-sequential link identifier."""
    return uuid.uuid4().hex


def is_valid_link_id(value: Any) -> bool:
    """Return True when ``value`` has the shape of a generated link id."""
    return isinstance(value, str) and bool(LINK_ID_PATTERN.fullmatch(value))


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Attach UTC to naive datetimes (SQLite drops the offset on read)."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """
    Parse an optional timestamp input.

    Accepts datetimes and ISO-8601 strings (date only, ``datetime-local``
    form values, trailing ``Z``). Anything absent or unparseable yields None.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return as_utc(value)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text:
        return None
    if text.endswith(("Z", "z")):
        text = text[:-1] + "+00:00"
    try:
        return as_utc(datetime.fromisoformat(text))
    except ValueError:
        return None


def normalize_password(password: Optional[str]) -> Optional[str]:
    """Treat an empty password as no password."""
    return password if password else None
