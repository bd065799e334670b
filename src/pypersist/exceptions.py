"""Custom exception hierarchy for pypersist."""

from __future__ import annotations


class PersistError(Exception):
    """Base exception for all pypersist errors."""


class PersistConfigError(PersistError):
    """Invalid or missing configuration."""


class PersistStorageError(PersistError):
    """Storage backend failure (read, write or remove)."""

    def __init__(
        self,
        message: str,
        *,
        key: str = "",
    ) -> None:
        self.key = key
        super().__init__(message)


class PersistSerializationError(PersistError):
    """Persisted text could not be produced or parsed."""


class PersistMergeError(PersistError):
    """Merge strategy produced something that cannot be applied to a store."""


class RestoredError(Exception):
    """Stand-in for a persisted error whose original class is not importable.

    Only the descriptive data survives a save/restore cycle: the message,
    the original class name and the formatted traceback text.
    """

    def __init__(self, message: str, *, name: str = "Error", stack: str | None = None) -> None:
        self.name = name
        self.stack = stack
        super().__init__(message)

    def __repr__(self) -> str:
        return f"RestoredError({self.name}: {self.args[0] if self.args else ''!r})"
