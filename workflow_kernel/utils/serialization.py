"""
JSON helpers for values headed into JSON columns.

Audit old/new values and notification payloads are built from domain
objects that carry UUIDs, datetimes and Decimals.  ``to_jsonable`` turns
them into plain JSON types with a stable representation.
"""

import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


def _json_serializer(obj: Any) -> Any:
    """
    Serializer for types json does not handle natively.

    Raises:
        TypeError: If object type is not supported.
    """
    if isinstance(obj, Decimal):
        return str(obj.normalize())
    if isinstance(obj, (datetime, date)):
        return obj.isoformat()
    if isinstance(obj, UUID):
        return str(obj)
    if isinstance(obj, Enum):
        return obj.value
    if isinstance(obj, (set, frozenset)):
        return sorted(str(item) for item in obj)
    raise TypeError(f"Object of type {type(obj).__name__} is not JSON serializable")


def canonicalize_json(data: Any) -> str:
    """Deterministic JSON: sorted keys, no whitespace."""
    return json.dumps(
        data,
        sort_keys=True,
        separators=(",", ":"),
        default=_json_serializer,
    )


def to_jsonable(data: dict[str, Any] | None) -> dict[str, Any] | None:
    """Round-trip ``data`` through canonical JSON."""
    if data is None:
        return None
    return json.loads(canonicalize_json(data))
