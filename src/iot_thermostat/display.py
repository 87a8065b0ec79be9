from __future__ import annotations
import datetime as dt
import logging
from typing import Callable, Optional, Tuple

from iot_thermostat.exceptions import DisplayError
from iot_thermostat.lcd import CharDisplay
from iot_thermostat.models import SensorReading

TEMP_PLACEHOLDER = "Temp: --.-F"

class DisplayRenderer:
    """
    Two-line status: "HH:MM:SS MODE" on top, and below it the temperature
    and the setpoint taking turns every `alternate_ticks` ticks.
    """
    def __init__(self, display: CharDisplay, machine, setpoint, sensor_status=None,
                 alternate_ticks: int = 10, clock: Callable[[], dt.datetime] = dt.datetime.now):
        self._display = display
        self._machine = machine
        self._setpoint = setpoint
        self._status = sensor_status
        self._every = max(1, int(alternate_ticks))
        self._clock = clock
        self._ticks = 0
        self._last_reading: Optional[SensorReading] = None
        self._log = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def on_reading(self, reading: SensorReading) -> None:
        self._last_reading = reading

    @property
    def last_reading(self) -> Optional[SensorReading]:
        return self._last_reading

    @property
    def showing_setpoint(self) -> bool:
        return (self._ticks // self._every) % 2 == 1

    def compose(self) -> Tuple[str, str]:
        now = self._clock().replace(microsecond=0)
        line1 = "%-8s %s" % (now.strftime("%H:%M:%S"), self._machine.mode.name)
        if self.showing_setpoint:
            line2 = f"Set:  {self._setpoint.get():.1f}F"
        elif self._last_reading is None or (self._status is not None and not self._status.healthy):
            line2 = TEMP_PLACEHOLDER
        else:
            line2 = f"Temp: {self._last_reading.temp_f:.1f}F"
        return line1, line2

    def tick(self) -> Tuple[str, str]:
        line1, line2 = self.compose()
        self._ticks += 1
        try:
            self._display.clear()
            self._display.render(line1, line2)
        except DisplayError as exc:
            self._log.debug("Display write skipped: %s", exc)
        return line1, line2
