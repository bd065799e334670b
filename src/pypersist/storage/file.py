"""Directory-backed storage: one UTF-8 file per key."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import os
import tempfile
from pathlib import Path
from urllib.parse import quote

from pypersist.exceptions import PersistStorageError

_logger = logging.getLogger(__name__)

_SUFFIX = ".json"


class FileStorage:
    """Synchronous storage writing each key to ``<directory>/<quoted key>.json``.

    Writes go to a temporary file in the same directory which then replaces
    the target, so a crash never leaves a half-written record behind.  The
    directory is created on first write.
    """

    is_async = False

    def __init__(self, directory: str | os.PathLike[str]) -> None:
        self._directory = Path(directory)

    @property
    def directory(self) -> Path:
        return self._directory

    def _path(self, key: str) -> Path:
        if not key:
            raise PersistStorageError("Storage key must be non-empty", key=key)
        return self._directory / f"{quote(key, safe='')}{_SUFFIX}"

    def has(self, key: str) -> bool:
        return self._path(key).is_file()

    def get(self, key: str) -> str | None:
        path = self._path(key)
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise PersistStorageError(f"Failed to read {path}: {exc}", key=key) from exc

    def set(self, key: str, value: str) -> None:
        path = self._path(key)
        try:
            self._directory.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(dir=self._directory, prefix=".tmp-", suffix=_SUFFIX)
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as fh:
                    fh.write(value)
                os.replace(tmp_name, path)
            except BaseException:
                with contextlib.suppress(OSError):
                    os.unlink(tmp_name)
                raise
        except OSError as exc:
            raise PersistStorageError(f"Failed to write {path}: {exc}", key=key) from exc
        _logger.debug("Wrote %d chars to %s", len(value), path)

    def remove(self, key: str) -> None:
        path = self._path(key)
        try:
            path.unlink(missing_ok=True)
        except OSError as exc:
            raise PersistStorageError(f"Failed to remove {path}: {exc}", key=key) from exc


class AsyncFileStorage:
    """:class:`FileStorage` with blocking file I/O moved to worker threads."""

    is_async = True

    def __init__(self, directory: str | os.PathLike[str]) -> None:
        self._sync = FileStorage(directory)

    @property
    def directory(self) -> Path:
        return self._sync.directory

    async def has(self, key: str) -> bool:
        return await asyncio.to_thread(self._sync.has, key)

    async def get(self, key: str) -> str | None:
        return await asyncio.to_thread(self._sync.get, key)

    async def set(self, key: str, value: str) -> None:
        await asyncio.to_thread(self._sync.set, key, value)

    async def remove(self, key: str) -> None:
        await asyncio.to_thread(self._sync.remove, key)
