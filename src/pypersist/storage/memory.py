"""In-process storage, lost when the process exits."""

from __future__ import annotations


class MemoryStorage:
    """Dict-backed synchronous storage, one namespace per instance."""

    is_async = False

    def __init__(self) -> None:
        self._data: dict[str, str] = {}

    def has(self, key: str) -> bool:
        return key in self._data

    def get(self, key: str) -> str | None:
        return self._data.get(key)

    def set(self, key: str, value: str) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)


class AsyncMemoryStorage:
    """Awaitable flavour of :class:`MemoryStorage`."""

    is_async = True

    def __init__(self) -> None:
        self._sync = MemoryStorage()

    async def has(self, key: str) -> bool:
        return self._sync.has(key)

    async def get(self, key: str) -> str | None:
        return self._sync.get(key)

    async def set(self, key: str, value: str) -> None:
        self._sync.set(key, value)

    async def remove(self, key: str) -> None:
        self._sync.remove(key)
