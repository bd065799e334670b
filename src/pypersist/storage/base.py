"""Structural storage contract consumed by the persistence plugin."""

from __future__ import annotations

from typing import Any, Protocol


class StorageStrategy(Protocol):
    """Minimal key -> text store.

    ``has`` is optional.  When ``is_async`` is true every method returns an
    awaitable; the plugin never inspects anything else to decide.
    """

    is_async: bool

    def get(self, key: str) -> Any:
        ...

    def set(self, key: str, value: str) -> Any:
        ...

    def remove(self, key: str) -> Any:
        ...
