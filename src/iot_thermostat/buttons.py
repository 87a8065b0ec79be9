import logging
from typing import Dict

from iot_thermostat.models import Event

BUTTON_EVENTS: Dict[str, Event] = {"cycle": Event.CYCLE, "raise": Event.RAISE, "lower": Event.LOWER}

class InputDispatcher:
    """Turns button presses into state machine events."""
    def __init__(self, machine):
        self._machine = machine
        self._log = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def on_press(self, button_id: str) -> None:
        event = BUTTON_EVENTS.get(button_id)
        if event is None:
            self._log.debug("Ignoring unknown button %r", button_id)
            return
        self._log.debug("Button %s -> %s", button_id, event.name)
        self._machine.send(event)
