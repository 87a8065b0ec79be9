from __future__ import annotations
import logging
import threading
from typing import Callable, Optional

class PeriodicTask:
    """
    Fixed-delay background ticker: run fn, wait period_s, repeat.

    One thread per task, so a task never overlaps with itself. stop() only
    signals; an in-flight tick always runs to completion. Exceptions escaping
    a tick are logged and the loop keeps going.
    """

    def __init__(self, name: str, period_s: float, fn: Callable[[], None],
                 initial_delay_s: float = 0.0):
        if period_s <= 0:
            raise ValueError("period_s must be positive")
        self.name = name
        self.period_s = float(period_s)
        self._fn = fn
        self._initial_delay_s = max(0.0, float(initial_delay_s))
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._log = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def stopped(self) -> bool:
        return self._stop.is_set()

    def start(self) -> None:
        if self._thread is not None:
            raise RuntimeError(f"task {self.name} already started")
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()

    def join(self, timeout: float | None = None) -> bool:
        """Wait for the thread to exit; True if it did within timeout."""
        t = self._thread
        if t is None or t is threading.current_thread():
            return True
        t.join(timeout)
        if t.is_alive():
            self._log.warning("Task %s still busy after %.1fs", self.name, timeout or 0.0)
            return False
        return True

    def _run(self) -> None:
        if self._initial_delay_s and self._stop.wait(self._initial_delay_s):
            return
        while not self._stop.is_set():
            try:
                self._fn()
            except Exception:
                self._log.exception("Tick failed in %s", self.name)
            if self._stop.wait(self.period_s):
                break
