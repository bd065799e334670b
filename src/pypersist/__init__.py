"""pypersist - selective, debounced persistence for in-memory state trees."""

from importlib.metadata import PackageNotFoundError, version

try:
    __version__ = version("pypersist")
except PackageNotFoundError:
    __version__ = "0+local"
from pypersist._codec import (
    Element,
    ElementContext,
    Symbol,
    TypeMarker,
    process_for_deserialization,
    process_for_serialization,
)
from pypersist._paths import get_by_path, path_matches_any, pick_paths, set_by_path
from pypersist.config import PersistOptions
from pypersist.exceptions import (
    PersistConfigError,
    PersistError,
    PersistMergeError,
    PersistSerializationError,
    PersistStorageError,
    RestoredError,
)
from pypersist.merge import DeepMergeStrategy, ShallowMergeStrategy
from pypersist.plugin import PersistPlugin, create_persist_plugin
from pypersist.serialization import AsyncJsonSerializer, JsonSerializer
from pypersist.storage import AsyncFileStorage, AsyncMemoryStorage, FileStorage, MemoryStorage

__all__ = [
    "__version__",
    "AsyncFileStorage",
    "AsyncJsonSerializer",
    "AsyncMemoryStorage",
    "DeepMergeStrategy",
    "Element",
    "ElementContext",
    "FileStorage",
    "JsonSerializer",
    "MemoryStorage",
    "PersistConfigError",
    "PersistError",
    "PersistMergeError",
    "PersistOptions",
    "PersistPlugin",
    "PersistSerializationError",
    "PersistStorageError",
    "RestoredError",
    "ShallowMergeStrategy",
    "Symbol",
    "TypeMarker",
    "create_persist_plugin",
    "get_by_path",
    "path_matches_any",
    "pick_paths",
    "process_for_deserialization",
    "process_for_serialization",
    "set_by_path",
]
