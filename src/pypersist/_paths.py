"""Dotted-path helpers for reading, writing and projecting state trees.

Paths come in two interchangeable shapes: a sequence of segments (as
reported by change notifications) and a dot-joined string (as written in
``paths`` configuration).  ``"a.b.c"`` and ``["a", "b", "c"]`` address the
same location.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterable, Mapping, MutableMapping, Sequence
from typing import Any

from pydantic import BaseModel

PathLike = str | Sequence[Any]

_MISSING: Any = object()


def split_path(path: PathLike) -> list[str]:
    """Normalize *path* to a list of string segments."""
    if isinstance(path, str):
        return path.split(".") if path else []
    return [str(segment) for segment in path]


def _child(current: Any, segment: str) -> Any:
    if isinstance(current, Mapping):
        return current.get(segment, _MISSING)
    if isinstance(current, Sequence) and not isinstance(current, (str, bytes, bytearray)):
        try:
            return current[int(segment)]
        except (ValueError, IndexError):
            return _MISSING
    return getattr(current, segment, _MISSING)


def get_by_path(obj: Any, segments: PathLike, default: Any = None) -> Any:
    """Return the value at *segments* inside *obj*, or *default*.

    Walking stops quietly at the first ``None`` or missing intermediate.
    """
    current = obj
    for segment in split_path(segments):
        if current is None:
            return default
        current = _child(current, segment)
        if current is _MISSING:
            return default
    return current


def set_by_path(obj: MutableMapping[str, Any], segments: PathLike, value: Any) -> None:
    """Write *value* at *segments*, creating intermediate dicts as needed."""
    parts = split_path(segments)
    if not parts:
        return

    current = obj
    for segment in parts[:-1]:
        nxt = current.get(segment)
        if not isinstance(nxt, MutableMapping):
            nxt = {}
            current[segment] = nxt
        current = nxt

    current[parts[-1]] = value


def pick_paths(obj: Any, paths: Iterable[str]) -> dict[str, Any]:
    """Project *obj* onto the given dotted *paths*.

    Paths that resolve to nothing are omitted; a stored ``None`` is kept.
    """
    result: dict[str, Any] = {}
    for path in paths:
        parts = split_path(path)
        value = get_by_path(obj, parts, _MISSING)
        if value is not _MISSING:
            set_by_path(result, parts, value)
    return result


def path_matches_any(change_path: PathLike, filter_paths: Sequence[str]) -> bool:
    """Return True when a change at *change_path* may affect *filter_paths*.

    No filter means everything matches.  Otherwise the change matches a
    filter path when it is the same location, a descendant of it, or an
    ancestor of it (a parent being replaced can change a filtered child).
    """
    if not filter_paths:
        return True

    changed = ".".join(split_path(change_path))
    for filter_path in filter_paths:
        if changed == filter_path or changed.startswith(f"{filter_path}."):
            return True
        if filter_path.startswith(f"{changed}."):
            return True
    return False


def state_fields(state: Any) -> dict[str, Any]:
    """Shallow top-level ``{name: value}`` view of a state object."""
    if isinstance(state, Mapping):
        return dict(state)
    if dataclasses.is_dataclass(state) and not isinstance(state, type):
        return {f.name: getattr(state, f.name) for f in dataclasses.fields(state)}
    if isinstance(state, BaseModel):
        return {name: getattr(state, name) for name in type(state).model_fields}
    if hasattr(state, "__dict__"):
        return dict(vars(state))

    fields: dict[str, Any] = {}
    for cls in type(state).__mro__:
        slots = cls.__dict__.get("__slots__", ())
        if isinstance(slots, str):
            slots = (slots,)
        for name in slots:
            if name.startswith("__") or name in fields:
                continue
            value = getattr(state, name, _MISSING)
            if value is not _MISSING:
                fields[name] = value
    return fields


def update_store(store: Any, new_state: Mapping[str, Any]) -> None:
    """Copy the top-level fields of *new_state* onto *store* in place."""
    if isinstance(store, MutableMapping):
        for key, value in new_state.items():
            store[key] = value
        return
    for key, value in new_state.items():
        setattr(store, key, value)
