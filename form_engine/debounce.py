"""
Trailing-edge debounce with an owned, cancellable timer handle.
"""

import logging
import threading
from typing import Any, Callable, Optional, Protocol, Tuple, Dict

logger = logging.getLogger(__name__)

DEFAULT_WAIT_SECONDS = 0.5


class TimerHandle(Protocol):
    """The part of threading.Timer the debouncer relies on."""

    def start(self) -> None: ...

    def cancel(self) -> None: ...


TimerFactory = Callable[[float, Callable[[], None]], TimerHandle]


def _thread_timer(interval: float, function: Callable[[], None]) -> TimerHandle:
    timer = threading.Timer(interval, function)
    timer.daemon = True
    return timer


class Debouncer:
    """
    Defers a call until `wait` seconds pass without a newer call.

    Every call cancels the pending timer and starts a fresh one carrying the
    latest arguments. Each timer is tagged with a generation number; when a
    timer fires it only runs the function if its generation is still current,
    so a superseded or cancelled timer that fires late does nothing.
    """

    def __init__(self, func: Callable[..., Any], wait: float = DEFAULT_WAIT_SECONDS,
                 timer_factory: Optional[TimerFactory] = None):
        self.func = func
        self.wait = wait
        self._timer_factory = timer_factory or _thread_timer
        self._lock = threading.RLock()
        self._timer: Optional[TimerHandle] = None
        self._generation = 0
        self._pending: Optional[Tuple[Tuple[Any, ...], Dict[str, Any]]] = None

    @property
    def pending(self) -> bool:
        """Whether a call is waiting for its quiet period."""
        with self._lock:
            return self._pending is not None

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        with self._lock:
            self._cancel_timer()
            self._generation += 1
            generation = self._generation
            self._pending = (args, kwargs)
            self._timer = self._timer_factory(self.wait, lambda: self._fire(generation))
            self._timer.start()

    def cancel(self) -> None:
        """Drop the pending call, if any."""
        with self._lock:
            self._cancel_timer()
            self._generation += 1
            self._pending = None

    def flush(self) -> Any:
        """Run the pending call now instead of waiting; no-op if nothing is pending."""
        with self._lock:
            if self._pending is None:
                return None
            self._cancel_timer()
            self._generation += 1
            args, kwargs = self._pending
            self._pending = None
            return self.func(*args, **kwargs)

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _fire(self, generation: int) -> None:
        with self._lock:
            if generation != self._generation or self._pending is None:
                logger.debug(f"Discarding stale debounced call (generation {generation})")
                return
            args, kwargs = self._pending
            self._pending = None
            self._timer = None
        try:
            self.func(*args, **kwargs)
        except Exception as e:
            logger.error(f"Debounced call failed: {e}", exc_info=True)
