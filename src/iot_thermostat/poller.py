from __future__ import annotations
import logging
from typing import Callable, List, Optional

from iot_thermostat.exceptions import SensorError
from iot_thermostat.models import SensorReading
from iot_thermostat.sensors import TemperatureSensor

ReadingListener = Callable[[SensorReading], None]

class SensorPoller:
    """
    Reads the sensor once per tick and hands the reading to every listener.

    A failed read skips the tick: nothing is published and only the
    `healthy` flag changes.
    """
    def __init__(self, sensor: TemperatureSensor):
        self._sensor = sensor
        self._listeners: List[ReadingListener] = []
        self._latest: Optional[SensorReading] = None
        self._healthy = False
        self._failures = 0
        self._log = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def add_listener(self, cb: ReadingListener) -> None:
        if cb not in self._listeners:
            self._listeners.append(cb)

    def remove_listener(self, cb: ReadingListener) -> None:
        try:
            self._listeners.remove(cb)
        except ValueError:
            pass

    @property
    def latest(self) -> Optional[SensorReading]:
        return self._latest

    @property
    def healthy(self) -> bool:
        """True when the most recent tick produced a reading."""
        return self._healthy

    def tick(self) -> Optional[SensorReading]:
        try:
            reading = self._sensor.read()
        except SensorError as exc:
            self._healthy = False
            self._failures += 1
            # first failure of a streak at WARNING, the rest at DEBUG
            lvl = logging.WARNING if self._failures == 1 else logging.DEBUG
            self._log.log(lvl, "Sensor read failed (%d in a row): %s", self._failures, exc)
            return None
        if self._failures:
            self._log.info("Sensor recovered after %d failed reads", self._failures)
        self._failures = 0
        self._healthy = True
        self._latest = reading
        self._notify(reading)
        return reading

    def _notify(self, reading: SensorReading) -> None:
        for cb in list(self._listeners):
            try:
                cb(reading)
            except Exception:
                self._log.exception("Reading listener %r failed", cb)
