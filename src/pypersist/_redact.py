"""Log-safe rendering of state snapshots.

Persisted state often holds credentials (auth tokens, API keys) next to
ordinary UI data.  Before a snapshot reaches a DEBUG log, credential-like
keys and any configured dotted paths are masked, and values JSON has no
word for (sets, dates, symbols, codec envelopes) are rendered in a short
readable form instead of their repr.
"""

from __future__ import annotations

import enum
from collections.abc import Iterable, Mapping, Sequence
from datetime import date, datetime, time
from typing import Any

from pypersist._codec import TYPE_KEY, Symbol, is_special_type
from pypersist._paths import split_path, state_fields

MASK = "<redacted>"

_MAX_DEPTH = 20

# Compared after lower-casing and dropping "_" and "-".
_SENSITIVE_KEYS: frozenset[str] = frozenset(
    {
        "password",
        "passwd",
        "secret",
        "token",
        "accesstoken",
        "refreshtoken",
        "apikey",
        "authorization",
        "cookie",
        "session",
        "credentials",
    }
)


def _is_sensitive_key(key: str) -> bool:
    return key.lower().replace("_", "").replace("-", "") in _SENSITIVE_KEYS


def redact_for_log(value: Any, *, paths: Iterable[str] = (), max_string: int = 120) -> Any:
    """Return a masked, JSON-like rendering of *value* for debug logs.

    Parameters
    ----------
    value : Any
        State snapshot (live values, not codec output).
    paths : iterable of str
        Dotted locations masked whatever their key name.
    max_string : int
        Longer strings are cut and annotated with their full length.
    """
    masked = {tuple(split_path(path)) for path in paths}
    return _render(value, (), masked, max_string)


def _render(value: Any, path: tuple[str, ...], masked: set[tuple[str, ...]], max_string: int) -> Any:
    if path in masked:
        return MASK
    if len(path) > _MAX_DEPTH:
        return "<max-depth>"

    def child(item: Any, segment: str) -> Any:
        return _render(item, (*path, segment), masked, max_string)

    if value is None or isinstance(value, (bool, int, float)):
        return value

    if isinstance(value, str):
        if len(value) > max_string:
            return f"{value[:max_string]}...<{len(value)} chars>"
        return value

    if isinstance(value, (bytes, bytearray)):
        return f"<{len(value)} bytes>"

    if isinstance(value, (datetime, date, time)):
        return value.isoformat()

    if isinstance(value, Symbol):
        return f"Symbol({value.description or ''})"

    if isinstance(value, enum.Enum):
        return f"{type(value).__name__}.{value.name}"

    if isinstance(value, BaseException):
        return f"{type(value).__name__}: {value}"

    if isinstance(value, Mapping):
        if is_special_type(value):
            # Already-encoded value: show the marker and its payload only.
            return {value[TYPE_KEY]: child(value.get("value"), "value")}
        rendered: dict[str, Any] = {}
        for key, item in value.items():
            name = str(key)
            rendered[name] = MASK if _is_sensitive_key(name) else child(item, name)
        return rendered

    if isinstance(value, (set, frozenset)):
        items = [child(item, str(index)) for index, item in enumerate(value)]
        return sorted(items, key=repr)

    if isinstance(value, Sequence):
        return [child(item, str(index)) for index, item in enumerate(value)]

    if callable(value):
        return f"<function {getattr(value, '__name__', type(value).__name__)}>"

    fields = state_fields(value)
    if not fields:
        return f"<{type(value).__name__}>"
    return {type(value).__name__: _render(fields, path, masked, max_string)}
