"""Change-triggered persistence plugin.

A :class:`PersistPlugin` owns one storage key.  The host container calls
:meth:`PersistPlugin.on_attach` once at registration and
:meth:`PersistPlugin.after_change` after every committed mutation; the
application awaits :meth:`PersistPlugin.hydrate` once its state exists.

Ordering caveats: a debounced write that is already pending is neither
cancelled by :meth:`~PersistPlugin.clear` nor by
:meth:`~PersistPlugin.hydrate`, so it may land after either call.
"""

from __future__ import annotations

import asyncio
import dataclasses
import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import Any

from pypersist._debounce import Debouncer
from pypersist._paths import PathLike, path_matches_any, pick_paths, state_fields, update_store
from pypersist._redact import redact_for_log
from pypersist.config import PersistOptions
from pypersist.exceptions import PersistConfigError, PersistMergeError, PersistSerializationError
from pypersist.merge import ShallowMergeStrategy
from pypersist.serialization import JsonSerializer
from pypersist.storage import FileStorage

_logger = logging.getLogger(__name__)


async def _invoke(is_async: bool, fn: Callable[..., Any], *args: Any) -> Any:
    """Call a strategy method, awaiting it only when the strategy is async."""
    if is_async:
        result: Awaitable[Any] = fn(*args)
        return await result
    return fn(*args)


class PersistPlugin:
    """Persist a state tree under *key* and restore it on demand.

    Usage::

        plugin = create_persist_plugin("settings", paths=["theme", "user"])
        plugin.on_attach()
        await plugin.hydrate(state)
        ...
        plugin.after_change(["theme"], "dark", state)  # from the host container
    """

    def __init__(self, key: str, options: PersistOptions | None = None) -> None:
        if not isinstance(key, str) or not key:
            raise PersistConfigError("Persist key must be a non-empty string")
        opts = options if options is not None else PersistOptions()

        self._key = key
        self._options = opts
        self._storage = opts.storage if opts.storage is not None else FileStorage(opts.storage_dir)
        self._serializer = opts.serialization if opts.serialization is not None else JsonSerializer()
        self._merger = opts.merge if opts.merge is not None else ShallowMergeStrategy()
        self._paths = opts.paths
        self._redact_paths = opts.redact_paths or ()

        self._hydrated = False
        self._bound_store: Any = None
        self._debouncer: Debouncer | None = None
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def id(self) -> str:
        return self._key

    @property
    def name(self) -> str:
        return f"Persist Plugin ({self._key})"

    @property
    def options(self) -> PersistOptions:
        return self._options

    def get_key(self) -> str:
        return self._key

    def is_hydrated(self) -> bool:
        """Whether :meth:`hydrate` has finished (successfully or not)."""
        return self._hydrated

    # ------------------------------------------------------------------
    # Host container hooks
    # ------------------------------------------------------------------

    def on_attach(self, *_args: Any) -> None:
        """Create the debounced writer; called once at registration."""
        self._debouncer = Debouncer(self._start_write, self._options.debounce_time)

    def after_change(self, path: PathLike, value: Any, state: Any) -> None:
        """React to a committed mutation at *path*.

        Changes are dropped (not queued) until the plugin is attached and
        hydrated.  Never raises.
        """
        if self._bound_store is None or not self._hydrated or self._debouncer is None:
            _logger.debug("Change at %s ignored for %r: plugin not ready", path, self._key)
            return

        if self._paths is not None and not path_matches_any(path, self._paths):
            return

        should_persist = self._options.should_persist
        if should_persist is not None:
            try:
                if not should_persist(path, value, state):
                    return
            except Exception:
                _logger.error("should_persist raised for %r; change dropped", self._key, exc_info=True)
                return

        self._debouncer.schedule(state)

    def _start_write(self, state: Any) -> None:
        task = asyncio.get_running_loop().create_task(self._write_logged(state, reraise=False))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # ------------------------------------------------------------------
    # Public lifecycle
    # ------------------------------------------------------------------

    async def hydrate(self, store: Any) -> None:
        """Restore persisted data into *store* in place.

        Read, parse and merge failures are logged and treated as "nothing to
        restore"; the plugin is marked hydrated either way.
        """
        self._bound_store = store
        try:
            data = await _invoke(self._storage.is_async, self._storage.get, self._key)
            if data:
                restored = await _invoke(self._serializer.is_async, self._serializer.deserialize, data)
                if not isinstance(restored, Mapping):
                    raise PersistSerializationError(
                        f"Persisted data for {self._key!r} is {type(restored).__name__}, not an object"
                    )
                merged = await _invoke(self._merger.is_async, self._merger.merge, store, restored)
                if not isinstance(merged, Mapping):
                    raise PersistMergeError(f"Merge strategy returned {type(merged).__name__} for {self._key!r}")
                update_store(store, merged)
                if _logger.isEnabledFor(logging.DEBUG):
                    snapshot = redact_for_log(dict(merged), paths=self._redact_paths)
                    _logger.debug("Hydrated %r: %s", self._key, snapshot)
            else:
                _logger.debug("Nothing persisted under %r", self._key)
        except Exception:
            _logger.error("Failed to hydrate %r", self._key, exc_info=True)
        self._hydrated = True

    async def persist(self, store: Any) -> None:
        """Write *store* now, bypassing hydration, path and predicate gates."""
        await self._write_logged(store, reraise=self._options.raise_errors)

    async def clear(self) -> None:
        """Remove the persisted record."""
        try:
            await _invoke(self._storage.is_async, self._storage.remove, self._key)
            _logger.debug("Cleared %r", self._key)
        except Exception:
            _logger.error("Failed to clear %r", self._key, exc_info=True)
            if self._options.raise_errors:
                raise

    async def exists(self) -> bool:
        """Whether a record is currently stored under the key."""
        has = getattr(self._storage, "has", None)
        try:
            if has is not None:
                return bool(await _invoke(self._storage.is_async, has, self._key))
            return await _invoke(self._storage.is_async, self._storage.get, self._key) is not None
        except Exception:
            _logger.error("Failed to look up %r", self._key, exc_info=True)
            if self._options.raise_errors:
                raise
            return False

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _project(self, state: Any) -> Any:
        if self._paths is not None:
            return pick_paths(state, self._paths)
        if isinstance(state, Mapping):
            return state
        return state_fields(state)

    async def _write(self, state: Any) -> None:
        data = self._project(state)
        if _logger.isEnabledFor(logging.DEBUG):
            _logger.debug("Persisting %r: %s", self._key, redact_for_log(data, paths=self._redact_paths))
        serialized = await _invoke(self._serializer.is_async, self._serializer.serialize, data)
        await _invoke(self._storage.is_async, self._storage.set, self._key, serialized)

    async def _write_logged(self, state: Any, *, reraise: bool) -> None:
        try:
            await self._write(state)
        except Exception:
            _logger.error("Failed to persist %r", self._key, exc_info=True)
            if reraise:
                raise


def create_persist_plugin(
    key: str,
    options: PersistOptions | None = None,
    **overrides: Any,
) -> PersistPlugin:
    """Build a :class:`PersistPlugin`; keyword overrides patch *options*."""
    if overrides:
        options = dataclasses.replace(options if options is not None else PersistOptions(), **overrides)
    return PersistPlugin(key, options)
