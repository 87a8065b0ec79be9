from __future__ import annotations
import logging
import threading
from operator import methodcaller
from typing import Callable, Dict, Optional, Tuple

from iot_thermostat.models import Event, Mode
from iot_thermostat.setpoint import SetpointStore

EntryAction = Callable[[], None]
InternalAction = Callable[[SetpointStore], float]

CYCLE_ORDER = (Mode.OFF, Mode.COOL, Mode.HEAT)

def build_transition_table() -> Dict[Tuple[Mode, Event], Tuple[Optional[Mode], Optional[InternalAction]]]:
    """
    (state, event) -> (next state, internal action).

    CYCLE walks the ring OFF -> COOL -> HEAT -> OFF. RAISE/LOWER are internal
    transitions (next state None) valid everywhere.
    """
    table: Dict[Tuple[Mode, Event], Tuple[Optional[Mode], Optional[InternalAction]]] = {}
    for i, src in enumerate(CYCLE_ORDER):
        table[(src, Event.CYCLE)] = (CYCLE_ORDER[(i + 1) % len(CYCLE_ORDER)], None)
        table[(src, Event.RAISE)] = (None, methodcaller("increment"))
        table[(src, Event.LOWER)] = (None, methodcaller("decrement"))
    return table

TRANSITIONS = build_transition_table()

class ModeStateMachine:
    """
    OFF/COOL/HEAT machine driven synchronously by send().

    Events are applied one at a time under a lock; an external transition runs
    the destination's entry action before send() returns, so the next event
    never sees a half-entered state. Entry actions must not call send().
    """

    def __init__(self, setpoint: SetpointStore, entry_actions: Dict[Mode, EntryAction] | None = None,
                 initial: Mode = Mode.OFF):
        self._setpoint = setpoint
        self._mode = initial
        self._entry: Dict[Mode, EntryAction] = dict(entry_actions or {})
        self._lock = threading.Lock()
        self._log = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @property
    def mode(self) -> Mode:
        return self._mode

    def set_entry_action(self, mode: Mode, action: EntryAction) -> None:
        with self._lock:
            self._entry[mode] = action

    def start(self) -> None:
        """Run the initial state's entry action once so outputs match the starting mode."""
        with self._lock:
            self._enter(self._mode)

    def send(self, event: Event) -> Mode:
        if not isinstance(event, Event):
            raise ValueError(f"not a thermostat event: {event!r}")
        with self._lock:
            target, action = TRANSITIONS[(self._mode, event)]
            if action is not None:
                value = action(self._setpoint)
                self._log.info("%s in %s -> setpoint %.1f", event.name, self._mode.name, value)
            if target is not None:
                prev = self._mode
                self._mode = target
                self._log.info("State changed %s -> %s", prev.name, target.name)
                self._enter(target)
            return self._mode

    def _enter(self, mode: Mode) -> None:
        action = self._entry.get(mode)
        if action is None:
            return
        try:
            action()
        except Exception:
            self._log.exception("Entry action for %s failed", mode.name)
