"""Trailing-edge debounce bound to the running asyncio loop."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Callable
from typing import Any

_logger = logging.getLogger(__name__)


class Debouncer:
    """Single pending timer; every :meth:`schedule` call restarts it.

    Only the arguments of the last call inside the window reach
    *callback*.  A delay of ``0`` fires on the next loop iteration.
    """

    def __init__(self, callback: Callable[..., Any], delay: float) -> None:
        self._callback = callback
        self._delay = delay
        self._handle: asyncio.TimerHandle | None = None

    @property
    def pending(self) -> bool:
        """Whether a call is waiting for its window to elapse."""
        return self._handle is not None

    def schedule(self, *args: Any) -> bool:
        """(Re)start the timer with *args*; False when no loop is running."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            _logger.warning("No running event loop; debounced call dropped")
            return False

        if self._handle is not None:
            self._handle.cancel()
        self._handle = loop.call_later(self._delay, self._fire, args)
        return True

    def _fire(self, args: tuple[Any, ...]) -> None:
        self._handle = None
        self._callback(*args)
