"""Debounce helper for bursty event sources (pan, zoom, crosshair moves)."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Optional, Tuple

from chartcore.infrastructure.logging.logging import get_logger


def current_loop() -> Optional[asyncio.AbstractEventLoop]:
    """The event loop running in this thread, or None."""
    try:
        return asyncio.get_running_loop()
    except RuntimeError:
        return None


class Debouncer:
    """Coalesces bursts of triggers into one call after `delay_ms` of quiet.

    - Every trigger cancels the pending call before scheduling a new one,
      so a superseded call never runs.
    - Timers go on the loop passed in, else on the loop running when
      `trigger` is called. The loop must be driven by the thread that
      triggers.
    - With no usable loop (plain synchronous callers) the callback runs
      right away: no coalescing, but nothing is lost.
    """

    def __init__(
        self,
        callback: Callable[..., Any],
        delay_ms: int = 50,
        loop: Optional[asyncio.AbstractEventLoop] = None,
    ) -> None:
        if delay_ms < 0:
            raise ValueError("delay_ms must be >= 0")
        self._callback = callback
        self._delay = delay_ms / 1000.0
        self._loop = loop
        self._handle: Optional[asyncio.TimerHandle] = None
        self._args: Tuple[Any, ...] = ()
        self._warned = False
        self._log = get_logger("debouncer")

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def trigger(self, *args: Any) -> None:
        self.cancel()
        loop = self._resolve_loop()
        if loop is None:
            if not self._warned:
                self._log.warning("debounce_without_loop", delay_ms=int(self._delay * 1000))
                self._warned = True
            self._callback(*args)
            return
        self._args = args
        self._handle = loop.call_later(self._delay, self._fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
        self._args = ()

    def flush(self) -> None:
        """Run the pending call now, if any."""
        if self._handle is None:
            return
        args = self._args
        self.cancel()
        self._callback(*args)

    def _resolve_loop(self) -> Optional[asyncio.AbstractEventLoop]:
        if self._loop is not None and not self._loop.is_closed():
            return self._loop
        return current_loop()

    def _fire(self) -> None:
        args = self._args
        self._handle = None
        self._args = ()
        self._callback(*args)
