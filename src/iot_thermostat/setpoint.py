from __future__ import annotations
import logging
import math
import threading
from typing import Callable, List

SetpointListener = Callable[[float], None]

DEFAULT_SETPOINT_F = 72.0
STEP_F = 0.5

class SetpointStore:
    """
    Thread-safe target temperature.

    Mutation and listener notification happen under one lock, so listeners
    see values in exactly the order they were written. Reads take no lock;
    a float attribute read is atomic and this keeps get() safe to call from
    inside other components' locks.
    """

    def __init__(self, initial: float = DEFAULT_SETPOINT_F, step: float = STEP_F):
        if not math.isfinite(initial):
            raise ValueError(f"initial setpoint must be finite, got {initial!r}")
        self._value = float(initial)
        self._step = float(step)
        self._lock = threading.RLock()
        self._listeners: List[SetpointListener] = []
        self._log = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def add_listener(self, cb: SetpointListener) -> None:
        with self._lock:
            if cb not in self._listeners:
                self._listeners.append(cb)

    def remove_listener(self, cb: SetpointListener) -> None:
        with self._lock:
            try:
                self._listeners.remove(cb)
            except ValueError:
                pass

    def get(self) -> float:
        return self._value

    def set(self, value) -> bool:
        """Absolute set; non-finite or non-numeric input is ignored. Returns True if applied."""
        if value is None or isinstance(value, bool):
            return False
        try:
            v = float(value)
        except (TypeError, ValueError):
            self._log.warning("Ignoring non-numeric setpoint %r", value)
            return False
        if not math.isfinite(v):
            self._log.warning("Ignoring non-finite setpoint %r", value)
            return False
        with self._lock:
            self._value = v
            self._notify(v)
        return True

    def increment(self) -> float:
        with self._lock:
            self._value += self._step
            v = self._value
            self._notify(v)
        return v

    def decrement(self) -> float:
        with self._lock:
            self._value -= self._step
            v = self._value
            self._notify(v)
        return v

    def _notify(self, value: float) -> None:
        self._log.debug("Setpoint -> %.1f", value)
        for cb in list(self._listeners):
            try:
                cb(value)
            except Exception:
                self._log.exception("Setpoint listener %r failed", cb)
