"""Special-type codec.

Encodes live values into a JSON-compatible tree and back.  Values that JSON
cannot carry are wrapped in an envelope::

    {"__type": "<marker>", "value": <payload>, ...extra}

Envelopes appear wherever such a value sits in the tree, not only at the
top level.  Temporal values, mappings, sets, plain dicts and lists survive a
round trip exactly; symbols, callables, element references, error
tracebacks and class instances keep descriptive data only.

Lossy spots worth knowing about:

* tuples are written as JSON arrays and come back as lists, except as set
  members or map keys where they must stay hashable and come back as
  tuples (nested sets likewise come back as frozensets);
* values with no readable fields (``bytes``, ``Decimal``, ``complex``...)
  become an empty ``__CLASS__`` bag.  This is logged at DEBUG.
"""

from __future__ import annotations

import builtins
import enum
import functools
import logging
import traceback
from collections.abc import Mapping
from datetime import date, datetime, time
from typing import Any, Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from pypersist._paths import state_fields
from pypersist.exceptions import RestoredError

_logger = logging.getLogger(__name__)

TYPE_KEY = "__type"


class TypeMarker(enum.StrEnum):
    """Closed set of envelope markers understood by the codec."""

    DATE = "__DATE__"
    MAP = "__MAP__"
    SET = "__SET__"
    SYMBOL = "__SYMBOL__"
    FUNCTION = "__FUNCTION__"
    CLASS = "__CLASS__"
    ERROR = "__ERROR__"
    DOM_ELEMENT = "__DOM_ELEMENT__"


_MARKERS: frozenset[str] = frozenset(TypeMarker)


class Symbol:
    """A unique token carrying a human-readable description.

    Two symbols are never equal unless they are the same object, so a
    restored symbol is a new token with the old description.
    """

    __slots__ = ("description",)

    def __init__(self, description: str | None = None) -> None:
        self.description = description

    def __repr__(self) -> str:
        return f"Symbol({self.description!r})" if self.description is not None else "Symbol()"


@runtime_checkable
class Element(Protocol):
    """Structural shape of a UI element reference."""

    tag_name: str
    id: str
    class_name: str


class ElementContext(Protocol):
    """A live UI tree able to resolve selectors back to elements."""

    def query_selector(self, selector: str) -> Any:
        ...


class SpecialTypeEnvelope(BaseModel):
    """Validated view of an envelope found while decoding."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    type: str = Field(alias=TYPE_KEY)
    value: Any = None


class ErrorPayload(BaseModel):
    """Payload stored for an ``__ERROR__`` envelope."""

    message: str = "Unknown error"
    name: str | None = None
    stack: str | None = None


# ---------------------------------------------------------------------------
# Encode
# ---------------------------------------------------------------------------


def _envelope(marker: TypeMarker, value: Any, **extra: Any) -> dict[str, Any]:
    return {TYPE_KEY: marker.value, "value": value, **extra}


def _callable_name(obj: Any) -> str:
    if isinstance(obj, functools.partial):
        obj = obj.func
    name = getattr(obj, "__qualname__", None) or getattr(obj, "__name__", None)
    if not name or name.endswith("<lambda>"):
        return "anonymous"
    return str(name)


def element_selector(element: Element) -> str:
    """Best-effort CSS selector for *element*: tag, then id or classes."""
    selector = element.tag_name.lower()
    if element.id:
        return f"{selector}#{element.id}"
    if element.class_name:
        return selector + "." + ".".join(element.class_name.split())
    return selector


def _encode_error(exc: BaseException) -> dict[str, Any]:
    # KeyError and friends quote str(exc); keep the raw single argument instead.
    message = exc.args[0] if len(exc.args) == 1 and isinstance(exc.args[0], str) else str(exc)

    if isinstance(exc, RestoredError):
        name, stack = exc.name, exc.stack
    else:
        name = type(exc).__name__
        stack = "".join(traceback.format_exception(exc)) if exc.__traceback__ is not None else None
    return _envelope(TypeMarker.ERROR, {"message": message, "name": name, "stack": stack})


def process_for_serialization(obj: Any, *, context: ElementContext | None = None) -> Any:
    """Return a JSON-compatible encoding of *obj*."""

    def encode(value: Any) -> Any:
        return process_for_serialization(value, context=context)

    if obj is None or isinstance(obj, (bool, int, float, str)):
        return obj

    if isinstance(obj, Symbol):
        return _envelope(TypeMarker.SYMBOL, obj.description)

    if isinstance(obj, enum.Enum):
        return _envelope(TypeMarker.SYMBOL, f"{type(obj).__name__}.{obj.name}")

    if isinstance(obj, datetime):
        return _envelope(TypeMarker.DATE, obj.isoformat())

    if isinstance(obj, date):
        return _envelope(TypeMarker.DATE, obj.isoformat(), kind="date")

    if isinstance(obj, time):
        return _envelope(TypeMarker.DATE, obj.isoformat(), kind="time")

    if isinstance(obj, Mapping):
        if type(obj) is dict and all(isinstance(key, str) for key in obj):
            return {key: encode(value) for key, value in obj.items()}
        return _envelope(TypeMarker.MAP, [[encode(key), encode(value)] for key, value in obj.items()])

    if isinstance(obj, (set, frozenset)):
        return _envelope(TypeMarker.SET, [encode(item) for item in obj])

    if isinstance(obj, BaseException):
        return _encode_error(obj)

    if context is not None and isinstance(obj, Element):
        return _envelope(TypeMarker.DOM_ELEMENT, element_selector(obj))

    if isinstance(obj, (list, tuple)):
        return [encode(item) for item in obj]

    if callable(obj):
        return _envelope(TypeMarker.FUNCTION, _callable_name(obj))

    fields = state_fields(obj)
    if not fields:
        _logger.debug("%s has no fields to persist; storing an empty bag", type(obj).__name__)
    return _envelope(TypeMarker.CLASS, encode(fields), className=type(obj).__name__)


# ---------------------------------------------------------------------------
# Decode
# ---------------------------------------------------------------------------


def _noop(*_args: Any, **_kwargs: Any) -> None:
    return None


def _hashable(value: Any) -> Any:
    # Set members and map keys must hash: lists become tuples, sets frozensets.
    if isinstance(value, list):
        return tuple(_hashable(item) for item in value)
    if isinstance(value, set):
        return frozenset(_hashable(item) for item in value)
    return value


def _decode_date(envelope: SpecialTypeEnvelope) -> date | time | datetime | None:
    if not isinstance(envelope.value, str):
        return None
    kind = (envelope.model_extra or {}).get("kind")
    try:
        if kind == "date":
            return date.fromisoformat(envelope.value)
        if kind == "time":
            return time.fromisoformat(envelope.value)
        return datetime.fromisoformat(envelope.value.replace("Z", "+00:00"))
    except ValueError:
        return None


def _decode_error(payload: Any) -> BaseException | None:
    if not isinstance(payload, Mapping):
        return None
    try:
        data = ErrorPayload.model_validate(payload)
    except ValidationError:
        return None

    cls = getattr(builtins, data.name, None) if data.name else None
    if isinstance(cls, type) and issubclass(cls, Exception):
        try:
            error: BaseException = cls(data.message)
        except TypeError:
            return RestoredError(data.message, name=data.name or "Error", stack=data.stack)
        if data.stack:
            error.add_note(data.stack)
        return error
    return RestoredError(data.message, name=data.name or "Error", stack=data.stack)


def _decode_envelope(envelope: SpecialTypeEnvelope, context: ElementContext | None) -> Any:
    def decode(value: Any) -> Any:
        return process_for_deserialization(value, context=context)

    value = envelope.value
    try:
        marker = TypeMarker(envelope.type)
    except ValueError:
        return value

    match marker:
        case TypeMarker.DATE:
            return _decode_date(envelope)
        case TypeMarker.MAP:
            if isinstance(value, list) and all(isinstance(pair, list) and len(pair) == 2 for pair in value):
                return {_hashable(decode(k)): decode(v) for k, v in value}
            return None
        case TypeMarker.SET:
            if isinstance(value, list):
                return {_hashable(decode(item)) for item in value}
            return None
        case TypeMarker.SYMBOL:
            if value is None or isinstance(value, str):
                return Symbol(value)
            return None
        case TypeMarker.FUNCTION:
            return _noop
        case TypeMarker.ERROR:
            return _decode_error(value)
        case TypeMarker.DOM_ELEMENT:
            if isinstance(value, str) and context is not None:
                return context.query_selector(value)
            return None
        case TypeMarker.CLASS:
            if isinstance(value, Mapping):
                return decode(value)
            return None


def process_for_deserialization(obj: Any, *, context: ElementContext | None = None) -> Any:
    """Rebuild live values from an encoded tree."""
    if isinstance(obj, list):
        return [process_for_deserialization(item, context=context) for item in obj]

    if not isinstance(obj, dict):
        return obj

    if isinstance(obj.get(TYPE_KEY), str):
        return _decode_envelope(SpecialTypeEnvelope.model_validate(obj), context)

    return {key: process_for_deserialization(value, context=context) for key, value in obj.items()}


def is_special_type(obj: Any) -> bool:
    """Return True when *obj* is an envelope with a known marker."""
    if not isinstance(obj, Mapping):
        return False
    marker = obj.get(TYPE_KEY)
    return isinstance(marker, str) and marker in _MARKERS

