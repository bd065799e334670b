"""Plugin configuration for pypersist."""

from __future__ import annotations

import dataclasses
import math
import os
from collections.abc import Callable, Sequence
from typing import Any

from pypersist.exceptions import PersistConfigError
from pypersist.merge import MergeStrategy
from pypersist.serialization import SerializationStrategy
from pypersist.storage.base import StorageStrategy

#: Default debounce window in seconds.
DEFAULT_DEBOUNCE_TIME: float = 0.1

#: Directory used by the default file storage.
DEFAULT_STORAGE_DIR: str = ".pypersist"

ShouldPersist = Callable[[list[str], Any, Any], bool]


def _env_bool(value: str | None, default: bool) -> bool:
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "y", "on"}:
        return True
    if normalized in {"0", "false", "no", "n", "off"}:
        return False
    return default


def _dotted_paths(name: str, paths: Sequence[str] | None) -> tuple[str, ...] | None:
    if paths is None:
        return None
    if isinstance(paths, str):
        raise PersistConfigError(f"{name} must be a sequence of dotted strings, not a single string")
    for path in paths:
        if not isinstance(path, str) or not path:
            raise PersistConfigError(f"Invalid path in {name}: {path!r}")
    return tuple(paths) or None


@dataclasses.dataclass(frozen=True)
class PersistOptions:
    """Persistence plugin options.

    Parameters
    ----------
    storage : StorageStrategy or None
        Key-value backend.  ``None`` selects a :class:`~pypersist.storage.FileStorage`
        rooted at ``storage_dir``.
    serialization : SerializationStrategy or None
        State <-> text strategy.  ``None`` selects
        :class:`~pypersist.serialization.JsonSerializer`.
    merge : MergeStrategy or None
        How restored data is reconciled with the live state.  ``None``
        selects :class:`~pypersist.merge.ShallowMergeStrategy`.
    paths : sequence of str or None
        Dotted allow-list of subtrees to persist.  ``None`` (or an empty
        sequence) persists the whole state.
    debounce_time : float
        Seconds a burst of changes must settle before a write.  ``0`` writes
        on the next loop iteration; a huge value effectively disables
        automatic persistence.
    should_persist : callable or None
        ``(path, value, state) -> bool`` predicate consulted for every change
        that passed the path filter.
    storage_dir : str
        Directory for the default file storage.
    raise_errors : bool
        Re-raise failures from explicit ``persist()``/``clear()`` calls after
        logging them.  Hydration and automatic writes never raise.
    redact_paths : sequence of str or None
        Dotted locations masked in DEBUG snapshots, on top of the built-in
        credential key names.  Never affects what is written.
    """

    storage: StorageStrategy | None = None
    serialization: SerializationStrategy | None = None
    merge: MergeStrategy | None = None
    paths: Sequence[str] | None = None
    debounce_time: float = DEFAULT_DEBOUNCE_TIME
    should_persist: ShouldPersist | None = None
    storage_dir: str = DEFAULT_STORAGE_DIR
    raise_errors: bool = False
    redact_paths: Sequence[str] | None = None

    def __post_init__(self) -> None:
        # Frozen dataclass: normalise through object.__setattr__.
        object.__setattr__(self, "paths", _dotted_paths("paths", self.paths))
        object.__setattr__(self, "redact_paths", _dotted_paths("redact_paths", self.redact_paths))

        if isinstance(self.debounce_time, bool) or not isinstance(self.debounce_time, (int, float)):
            raise PersistConfigError(f"debounce_time must be a number, got {self.debounce_time!r}")
        if math.isnan(self.debounce_time) or self.debounce_time < 0:
            raise PersistConfigError(f"debounce_time must be >= 0, got {self.debounce_time!r}")

    @classmethod
    def from_env(cls, **overrides: Any) -> PersistOptions:
        """Create options from environment variables.

        Reads ``PYPERSIST_DEBOUNCE_TIME``, ``PYPERSIST_STORAGE_DIR`` and
        ``PYPERSIST_RAISE_ERRORS``.  Explicit keyword arguments override
        environment values.
        """
        env = os.environ
        kwargs: dict[str, Any] = {}

        debounce_env = env.get("PYPERSIST_DEBOUNCE_TIME")
        if debounce_env is not None and "debounce_time" not in overrides:
            try:
                kwargs["debounce_time"] = float(debounce_env)
            except ValueError as exc:
                raise PersistConfigError(f"PYPERSIST_DEBOUNCE_TIME is not a number: {debounce_env!r}") from exc

        storage_dir = env.get("PYPERSIST_STORAGE_DIR")
        if storage_dir and "storage_dir" not in overrides:
            kwargs["storage_dir"] = storage_dir

        if "raise_errors" not in overrides:
            kwargs["raise_errors"] = _env_bool(env.get("PYPERSIST_RAISE_ERRORS"), False)

        kwargs.update(overrides)
        return cls(**kwargs)
