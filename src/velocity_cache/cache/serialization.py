"""JSON encoding at the store boundary.

Cached values are plain JSON-compatible Python objects. Both engines store
them as text produced here, so a value read back from either engine compares
equal to the value that was written (tuples come back as lists).
"""

from __future__ import annotations

import json
from typing import Any

from velocity_cache.cache.errors import CorruptEntryError, SerializationError


def encode(value: Any, *, pretty: bool = False) -> str:
    """Encode a value as JSON text.

    Raises:
        SerializationError: If the value holds something JSON cannot represent
            (objects, sets, NaN, non-string keys of unsupported types).
    """
    try:
        return json.dumps(value, ensure_ascii=False, allow_nan=False, indent=2 if pretty else None)
    except (TypeError, ValueError) as e:
        raise SerializationError(str(e)) from e


def decode(data: str) -> Any:
    """Decode JSON text.

    Raises:
        CorruptEntryError: If the text is not valid JSON.
    """
    try:
        return json.loads(data)
    except json.JSONDecodeError as e:
        raise CorruptEntryError(str(e)) from e
