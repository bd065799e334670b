"""Key-value storage backends.

Every backend stores text under string keys and advertises through
``is_async`` whether its methods return awaitables.
"""

from pypersist.storage.base import StorageStrategy
from pypersist.storage.file import AsyncFileStorage, FileStorage
from pypersist.storage.memory import AsyncMemoryStorage, MemoryStorage

__all__ = [
    "AsyncFileStorage",
    "AsyncMemoryStorage",
    "FileStorage",
    "MemoryStorage",
    "StorageStrategy",
]
