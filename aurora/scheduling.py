"""
Aurora Scheduling - Recurring timer for tick loops

IntervalTimer runs a callback every `interval` seconds on a daemon thread.
The callback runs while holding the timer's tick lock, and the loop checks
the stop flag under that same lock, so once cancel() returns no further
tick can start.
"""

from typing import Callable, Optional
import logging
import threading
import time

logger = logging.getLogger(__name__)


class IntervalTimer:
    """Background loop calling `callback` every `interval` seconds."""

    def __init__(self, interval: float, callback: Callable[[], None], name: Optional[str] = None):
        if interval <= 0:
            raise ValueError(f"Interval must be positive, got {interval}")
        self.interval = interval
        self.callback = callback
        self.name = name or getattr(callback, '__qualname__', 'timer')
        self.stop_flag = threading.Event()
        self._tick_lock = threading.Lock()
        self.thread: Optional[threading.Thread] = None
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self.thread is not None and not self.stop_flag.is_set()

    def start(self) -> None:
        """Start the loop. Starting a running or cancelled timer is an error."""
        if self.thread is not None:
            raise RuntimeError(f"Timer '{self.name}' already started")
        self.thread = threading.Thread(target=self._run_loop, name=self.name, daemon=True)
        self.thread.start()

    def cancel(self) -> None:
        """Stop the loop. Blocks until an in-flight tick has finished."""
        self.stop_flag.set()
        if self.thread is threading.current_thread():
            # Cancelled from inside the callback; the loop exits after it returns
            return
        with self._tick_lock:
            pass

    def _run_loop(self) -> None:
        # Next deadline is scheduled from the previous one to avoid drift
        next_tick = time.monotonic()
        while not self.stop_flag.is_set():
            with self._tick_lock:
                if self.stop_flag.is_set():
                    break
                try:
                    self.callback()
                except Exception:
                    logger.exception(f"Tick of '{self.name}' failed")
                self.ticks += 1
            next_tick += self.interval
            delay = next_tick - time.monotonic()
            if delay < 0:
                # Fell behind; skip missed ticks instead of bursting
                next_tick = time.monotonic()
                delay = 0
            self.stop_flag.wait(delay)


class ManualTimer:
    """
    Drop-in replacement for IntervalTimer that only ticks when told to.

    Used where tick timing must be deterministic (tests, offline renders).
    """

    def __init__(self, interval: float, callback: Callable[[], None], name: Optional[str] = None):
        self.interval = interval
        self.callback = callback
        self.name = name or 'manual'
        self.started = False
        self.cancelled = False
        self.ticks = 0

    @property
    def running(self) -> bool:
        return self.started and not self.cancelled

    def start(self) -> None:
        if self.started:
            raise RuntimeError(f"Timer '{self.name}' already started")
        self.started = True

    def cancel(self) -> None:
        self.cancelled = True

    def fire(self, times: int = 1) -> None:
        """Run the callback `times` times if the timer is running."""
        for _ in range(times):
            if not self.running:
                return
            self.callback()
            self.ticks += 1


TimerFactory = Callable[[float, Callable[[], None], Optional[str]], object]
