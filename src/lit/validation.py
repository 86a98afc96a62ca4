"""Validation of user-supplied values shared by the store and the CLI.

Pure functions, no Click dependency.
"""

from __future__ import annotations

import unicodedata
from typing import Any

from lit.errors import ValidationError

_MAX_ACTOR_LENGTH = 128


def sanitize_actor(value: Any) -> str:
    """Validate and clean an actor name for embedding in a stamp.

    Stamps live on a single outline line, so control characters (newlines
    included) are rejected rather than stripped.
    """
    if not isinstance(value, str):
        raise ValidationError("actor must be a string")
    for ch in value:
        if unicodedata.category(ch).startswith("C"):
            raise ValidationError(f"actor must not contain control characters (found U+{ord(ch):04X})")
    cleaned = value.strip()
    if not cleaned:
        raise ValidationError("actor must not be empty")
    if len(cleaned) > _MAX_ACTOR_LENGTH:
        raise ValidationError(f"actor must be at most {_MAX_ACTOR_LENGTH} characters")
    return cleaned


def parse_count(value: Any) -> int:
    """Parse a positive issue count."""
    try:
        count = int(value)
    except (TypeError, ValueError):
        raise ValidationError(f"count must be an integer, got {value!r}") from None
    if count < 1:
        raise ValidationError(f"count must be at least 1, got {count}")
    return count


def check_field_name(name: Any) -> str:
    """Reject field names that would not survive as an outline ``key: value`` line."""
    if not isinstance(name, str) or not name:
        raise ValidationError("field name must not be empty")
    if name.startswith("="):
        raise ValidationError(f"field name must not start with '=': {name!r}")
    for ch in name:
        if ch == ":" or ch.isspace() or unicodedata.category(ch).startswith("C"):
            raise ValidationError(f"field name must not contain {ch!r}: {name!r}")
    return name
