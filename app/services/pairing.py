"""
DevMatch — Identifier parsing and pair canonicalization.

A relationship record's natural key is the unordered pair of its two
participants.  ``canonicalize_pair`` fixes that pair into ``(low, high)``
using the lexicographic order of the canonical string form of each UUID, so
both participants always address the same record.
"""

from __future__ import annotations

import uuid

from app.exceptions import InvalidInput


def parse_id(value: str | uuid.UUID, label: str = "id") -> uuid.UUID:
    """Parse a UUID from a path parameter or event payload.

    Raises ``InvalidInput`` for anything that is not a well-formed UUID.
    """
    if isinstance(value, uuid.UUID):
        return value
    if not isinstance(value, str) or not value.strip():
        raise InvalidInput(f"Invalid {label} format.")
    try:
        return uuid.UUID(value.strip())
    except ValueError as exc:
        raise InvalidInput(f"Invalid {label} format.") from exc


def canonicalize_pair(
    first: str | uuid.UUID,
    second: str | uuid.UUID,
) -> tuple[uuid.UUID, uuid.UUID]:
    """Return ``(low, high)`` for two distinct participant identifiers.

    The result is independent of argument order:
    ``canonicalize_pair(a, b) == canonicalize_pair(b, a)``.
    """
    a = parse_id(first, "participant id")
    b = parse_id(second, "participant id")
    if a == b:
        raise InvalidInput("A pair needs two distinct participants.")
    return (a, b) if str(a) < str(b) else (b, a)
