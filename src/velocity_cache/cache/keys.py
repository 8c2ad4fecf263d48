"""Cache key construction and key/pattern mapping for the storage engines.

Usage:
    key = compose_key("users_list", {"page": 2, "per_page": 15})
    # "users_list:5f1c..."  (same digest for the same parameters in any order)

    key = request_key("/api/users", "get", {"page": 1, "_": "1699999"})
    # "GET:/api/users:<md5>"  ("_"-prefixed cache busters are ignored)
"""

from __future__ import annotations

import hashlib
import re
from typing import TYPE_CHECKING
from urllib.parse import urlencode

if TYPE_CHECKING:
    from collections.abc import Mapping

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_-]")
_MAX_SAFE_LENGTH = 200
_TRUNCATED_PREFIX = 160


def _md5(text: str) -> str:
    return hashlib.md5(text.encode("utf-8")).hexdigest()


def sanitize_key(key: str) -> str:
    """Map an arbitrary key onto ``[A-Za-z0-9_-]+`` for use as a file name.

    Path separators, dots and NUL bytes all become ``_``, so the result can
    never name a parent or sibling directory. Overlong keys keep a readable
    prefix followed by a digest of the raw key.
    """
    safe = _UNSAFE_CHARS.sub("_", key)
    if not safe:
        return "_"
    if len(safe) > _MAX_SAFE_LENGTH:
        return f"{safe[:_TRUNCATED_PREFIX]}_{_md5(key)}"
    return safe


def sanitize_namespace(namespace: str) -> str:
    return sanitize_key(namespace)


def params_digest(params: Mapping[str, object] | None, *, drop_private: bool = True) -> str | None:
    """Return an md5 digest of the sorted parameters, or None when there are none.

    Request parameters whose name starts with ``_`` are cache busters and are
    ignored unless ``drop_private`` is False.
    """
    if not params:
        return None
    filtered = {
        name: value for name, value in params.items() if not (drop_private and str(name).startswith("_"))
    }
    if not filtered:
        return None
    query = urlencode(sorted(filtered.items()), doseq=True)
    return _md5(query)


def compose_key(identifier: str, params: Mapping[str, object] | None = None, *, drop_private: bool = True) -> str:
    digest = params_digest(params, drop_private=drop_private)
    if digest is None:
        return identifier
    return f"{identifier}:{digest}"


def request_key(uri: str, method: str = "GET", params: Mapping[str, object] | None = None) -> str:
    """Build the key for a request-level cache entry: ``METHOD:uri[:digest]``."""
    return compose_key(f"{method.upper()}:{uri}", params)


def pattern_to_regex(pattern: str) -> re.Pattern[str]:
    """Translate a ``*`` glob into a regex over sanitized file stems.

    Literal runs are sanitized like keys, so the pattern addresses the same
    names that ``sanitize_key`` produces and nothing outside them. A pattern
    without ``*`` names one key and goes through ``sanitize_key`` whole, so
    overlong keys match their truncated stem.
    """
    if "*" not in pattern:
        return re.compile(re.escape(sanitize_key(pattern)), re.DOTALL)
    parts = [re.escape(_UNSAFE_CHARS.sub("_", part)) for part in pattern.split("*")]
    return re.compile(".*".join(parts), re.DOTALL)


def pattern_to_like(pattern: str) -> str:
    r"""Translate a ``*`` glob into a SQL ``LIKE`` pattern using ``\`` as the escape character."""
    escaped = pattern.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return escaped.replace("*", "%")
