"""Timer-based coalescing of storage writes."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional, Protocol

LOGGER = logging.getLogger(__name__)

DEFAULT_DELAY_SECONDS = 2.0


class TimerHandle(Protocol):
    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], TimerHandle]


def _thread_timer(delay: float, callback: Callable[[], None]) -> TimerHandle:
    timer = threading.Timer(delay, callback)
    timer.daemon = True
    return timer


class DebouncedWriter:
    """Run ``write`` once per quiet window after the most recent ``schedule`` call."""

    def __init__(
        self,
        write: Callable[[], Any],
        *,
        delay: float = DEFAULT_DELAY_SECONDS,
        timer_factory: Optional[TimerFactory] = None,
    ) -> None:
        self._write = write
        self._delay = delay
        self._timer_factory = timer_factory or _thread_timer
        self._timer: Optional[TimerHandle] = None
        self._generation = 0
        self._lock = threading.Lock()

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        return self._timer is not None

    def schedule(self) -> None:
        """Restart the quiet window; only the latest call ends up writing."""
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._generation += 1
            generation = self._generation
            self._timer = self._timer_factory(self._delay, lambda: self._fire(generation))
            self._timer.start()

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._timer = None
            self._generation += 1

    def flush(self) -> Any:
        """Drop any pending timer and write immediately."""
        self.cancel()
        return self._write()

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation:
                return
            self._timer = None
        try:
            self._write()
        except Exception:  # pragma: no cover - timer threads must not die loudly
            LOGGER.exception("Debounced write failed")


__all__ = ["DEFAULT_DELAY_SECONDS", "DebouncedWriter", "TimerFactory", "TimerHandle"]
