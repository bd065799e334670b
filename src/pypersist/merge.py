"""Strategies reconciling restored data with freshly initialized state.

Both strategies leave their inputs untouched and deep-copy whatever they
return, so the merged result never aliases objects still held by the host
container or by the decoded payload.
"""

from __future__ import annotations

import copy
from typing import Any, Protocol

from pypersist._codec import is_special_type
from pypersist._paths import state_fields


class MergeStrategy(Protocol):
    """``merge(initial, restored) -> merged``; awaitable when ``is_async``."""

    is_async: bool

    def merge(self, initial: Any, restored: Any) -> Any:
        ...


def _is_mergeable(value: Any) -> bool:
    return type(value) is dict and not is_special_type(value)


def _deep_merge(target: Any, source: Any) -> Any:
    """Merge *source* over *target*; only plain dicts on both sides recurse."""
    if not _is_mergeable(source) or not _is_mergeable(target):
        return copy.deepcopy(source)

    result = copy.deepcopy(target)
    for key, value in source.items():
        result[key] = _deep_merge(target.get(key), value)
    return result


class ShallowMergeStrategy:
    """Top-level overwrite: restored keys replace initial keys wholesale."""

    is_async = False

    def merge(self, initial: Any, restored: Any) -> dict[str, Any]:
        return copy.deepcopy({**state_fields(initial), **state_fields(restored)})


class DeepMergeStrategy:
    """Recursive key-wise union of nested plain dicts.

    Lists, sets, envelopes and any other non-dict values are atomic: the
    restored value replaces the initial one, avoiding element-wise merges of
    sequences whose lengths differ.
    """

    is_async = False

    def merge(self, initial: Any, restored: Any) -> dict[str, Any]:
        merged: dict[str, Any] = _deep_merge(state_fields(initial), state_fields(restored))
        return merged
