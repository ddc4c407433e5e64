"""
Content fingerprints for duplicate-submission detection.

A fingerprint is the SHA-256 of a payload rendered as canonical JSON:
sorted keys, no whitespace, and a fixed text form for every value type a
request carries, so two submissions with the same content always collide.
"""

import hashlib
import json
from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import Any
from uuid import UUID


def _canonical_value(value: Any) -> Any:
    if isinstance(value, Decimal):
        # "2", "2.0" and "2.00" days are the same request
        return format(value.normalize(), "f")
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (UUID, datetime, date)):
        return str(value) if isinstance(value, UUID) else value.isoformat()
    if isinstance(value, (set, frozenset)):
        return sorted(value, key=str)
    if isinstance(value, tuple):
        return list(value)
    raise TypeError(f"Cannot fingerprint a {type(value).__name__}")


def canonicalize_json(data: Any) -> str:
    return json.dumps(data, sort_keys=True, separators=(",", ":"), default=_canonical_value)


def hash_payload(payload: dict) -> str:
    """Hex SHA-256 of ``payload``'s canonical JSON."""
    return hashlib.sha256(canonicalize_json(payload).encode("utf-8")).hexdigest()
