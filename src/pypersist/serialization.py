"""JSON serialization strategies built on the special-type codec."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Sequence
from typing import Any, Protocol

from pypersist._codec import ElementContext, process_for_deserialization, process_for_serialization
from pypersist._paths import pick_paths
from pypersist.exceptions import PersistSerializationError

_logger = logging.getLogger(__name__)


def _dumps(encoded: Any) -> str:
    try:
        return json.dumps(encoded, separators=(",", ":"))
    except (TypeError, ValueError) as exc:
        raise PersistSerializationError(f"State is not JSON encodable: {exc}") from exc


def _loads(data: str) -> Any:
    try:
        parsed = json.loads(data)
    except json.JSONDecodeError as exc:
        raise PersistSerializationError(f"Invalid persisted JSON: {data[:64]!r}") from exc
    _logger.debug("Parsed persisted payload (%d chars)", len(data))
    return parsed


class SerializationStrategy(Protocol):
    """State <-> text contract.

    When ``is_async`` is true both methods return awaitables.
    """

    is_async: bool

    def serialize(self, state: Any) -> Any:
        ...

    def deserialize(self, data: str) -> Any:
        ...


class JsonSerializer:
    """Compact JSON text with special values wrapped in envelopes.

    Parameters
    ----------
    paths : sequence of str or None
        Dotted allow-list; when set only these subtrees are written.
    context : ElementContext or None
        Live UI tree used to encode and resolve element references.
    """

    is_async = False

    def __init__(
        self,
        *,
        paths: Sequence[str] | None = None,
        context: ElementContext | None = None,
    ) -> None:
        self._paths = tuple(paths) if paths else None
        self._context = context

    def encode(self, state: Any) -> Any:
        """Project and encode *state* into a fresh JSON-compatible tree."""
        data = pick_paths(state, self._paths) if self._paths is not None else state
        return process_for_serialization(data, context=self._context)

    def decode(self, parsed: Any) -> Any:
        return process_for_deserialization(parsed, context=self._context)

    def serialize(self, state: Any) -> str:
        return _dumps(self.encode(state))

    def deserialize(self, data: str) -> Any:
        return self.decode(_loads(data))


class AsyncJsonSerializer:
    """:class:`JsonSerializer` that offloads JSON text handling to a thread.

    Walking the state (projection, encoding, decoding) stays on the event
    loop thread so the loop can keep mutating the state safely; only
    ``json.dumps``/``json.loads`` of trees nothing else holds run in a
    worker thread.
    """

    is_async = True

    def __init__(
        self,
        *,
        paths: Sequence[str] | None = None,
        context: ElementContext | None = None,
    ) -> None:
        self._sync = JsonSerializer(paths=paths, context=context)

    async def serialize(self, state: Any) -> str:
        encoded = self._sync.encode(state)
        return await asyncio.to_thread(_dumps, encoded)

    async def deserialize(self, data: str) -> Any:
        parsed = await asyncio.to_thread(_loads, data)
        return self._sync.decode(parsed)
