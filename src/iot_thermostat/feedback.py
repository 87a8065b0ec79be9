from __future__ import annotations
import logging
import math
import threading
from functools import partial
from typing import Optional

from iot_thermostat.exceptions import SensorError
from iot_thermostat.gpioio import OutputLine
from iot_thermostat.models import Mode, Relation, SensorReading, relation_for
from iot_thermostat.scheduler import PeriodicTask
from iot_thermostat.sensors import TemperatureSensor
from iot_thermostat.setpoint import SetpointStore

PULSE_HALF_PERIOD_S = 0.6

class IndicatorFeedbackController:
    """
    Drives the hot (red) and cold (blue) indicator LEDs from mode, temperature
    and setpoint.

    In HEAT the hot LED is steady once temp >= setpoint and pulses below it;
    COOL mirrors that with the cold LED and temp <= setpoint. No reading means
    the active LED is off. Only one LED is ever driven by a given mode; the
    other is forced off on every mode entry.

    Locking: self._lock serializes the public operations. self._line_lock is
    the single boundary for writes to the output lines and is shared with the
    pulse tick, so a toggle never interleaves with a steady set. get() on the
    setpoint store is lock-free, which keeps setpoint notifications (delivered
    under the store's lock) from deadlocking against a reading update.
    """

    def __init__(self, hot: OutputLine, cold: OutputLine, sensor: TemperatureSensor,
                 setpoint: SetpointStore, pulse_half_period_s: float = PULSE_HALF_PERIOD_S):
        self.hot = hot
        self.cold = cold
        self._sensor = sensor
        self._setpoint = setpoint
        self._half_period = float(pulse_half_period_s)
        self._lock = threading.RLock()
        self._line_lock = threading.Lock()
        self._pulse_task: Optional[PeriodicTask] = None
        self._pulse_alive: Optional[threading.Event] = None
        self._machine = None
        self._last_temp: Optional[float] = None
        self._relation: Optional[Relation] = None
        self._closed = False
        self._log = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def bind_state_machine(self, machine) -> None:
        """Set once during startup wiring; the machine in turn calls our entry actions."""
        if self._machine is not None and self._machine is not machine:
            raise RuntimeError("feedback controller already bound to a state machine")
        self._machine = machine

    @property
    def pulsing(self) -> bool:
        return self._pulse_alive is not None and self._pulse_alive.is_set()

    @property
    def pulse_task(self) -> Optional[PeriodicTask]:
        return self._pulse_task

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def last_temp(self) -> Optional[float]:
        return self._last_temp

    # -- mode entry actions -------------------------------------------------

    def all_off(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._stop_pulse()
            with self._line_lock:
                self.hot.off(); self.cold.off()
            self._relation = None

    def enter_heat(self) -> None:
        self._enter(Mode.HEAT)

    def enter_cool(self) -> None:
        self._enter(Mode.COOL)

    def _enter(self, mode: Mode) -> None:
        with self._lock:
            if self._closed:
                return
            self._stop_pulse()
            temp = self._read_temp()
            if temp is not None:
                self._last_temp = temp
            sp = self._setpoint.get()
            self._log.info("%s check: temp=%s setpoint=%.1f", mode.name,
                           "n/a" if temp is None else f"{temp:.1f}", sp)
            self._relation = relation_for(temp, sp)
            self.update_for_temp(mode, temp, sp)
            inactive = self.cold if mode is Mode.HEAT else self.hot
            with self._line_lock:
                inactive.off()

    # -- readings and setpoint changes --------------------------------------

    def on_reading(self, reading: SensorReading) -> None:
        with self._lock:
            self._last_temp = reading.temp_f
            self._reevaluate(self._setpoint.get())

    def on_setpoint_changed(self, value: float) -> None:
        with self._lock:
            self._reevaluate(value)

    def _reevaluate(self, setpoint: float) -> None:
        """Re-drive the LEDs only when the temperature/setpoint relation crosses."""
        mode = self._current_mode()
        if mode not in (Mode.HEAT, Mode.COOL):
            return
        relation = relation_for(self._last_temp, setpoint)
        if relation == self._relation:
            return
        self._log.debug("Crossing %s -> %s in %s", self._relation, relation, mode.name)
        self._relation = relation
        self.update_for_temp(mode, self._last_temp, setpoint)

    def update_for_temp(self, mode: Optional[Mode], temp_f: Optional[float], setpoint: float) -> None:
        with self._lock:
            if self._closed:
                return
            if mode is Mode.HEAT:
                line = self.hot
                steady = temp_f is not None and temp_f >= setpoint
            elif mode is Mode.COOL:
                line = self.cold
                steady = temp_f is not None and temp_f <= setpoint
            else:
                self._stop_pulse()
                with self._line_lock:
                    self.hot.off(); self.cold.off()
                return

            if temp_f is None or math.isnan(temp_f):
                with self._line_lock:
                    line.off()
                    self._stop_pulse()
            elif steady:
                self._stop_pulse()
                with self._line_lock:
                    line.on()
            else:
                with self._line_lock:
                    line.off()
                    self._start_pulse(line)

    # -- pulse sub-protocol -------------------------------------------------

    def _start_pulse(self, line: OutputLine) -> None:
        if self._closed:
            return
        self._stop_pulse()
        alive = threading.Event(); alive.set()
        task = PeriodicTask(f"pulse-{line.name}", self._half_period,
                            partial(self._pulse_tick, line, alive),
                            initial_delay_s=self._half_period)
        self._pulse_alive = alive
        self._pulse_task = task
        task.start()

    def _stop_pulse(self) -> Optional[PeriodicTask]:
        """Idempotent. Does not wait for the timer thread or touch the line level."""
        if self._pulse_alive is not None:
            self._pulse_alive.clear()
        task = self._pulse_task
        if task is not None:
            task.stop()
        self._pulse_alive = None
        self._pulse_task = None
        return task

    def _pulse_tick(self, line: OutputLine, alive: threading.Event) -> None:
        with self._line_lock:
            # a tick queued behind a stop must not toggle
            if not alive.is_set():
                return
            line.toggle()

    # -- helpers ------------------------------------------------------------

    def _current_mode(self) -> Optional[Mode]:
        return self._machine.mode if self._machine is not None else None

    def _read_temp(self) -> Optional[float]:
        try:
            return self._sensor.read().temp_f
        except SensorError as exc:
            self._log.warning("Error reading temperature: %s", exc)
            return None

    def shutdown(self, timeout: float = 2.0) -> None:
        """
        Cancel pulsing and leave both LEDs off. Every later call is a no-op, so
        a straggling tick cannot drive lines that GPIO cleanup has released.
        """
        with self._lock:
            self._closed = True
            task = self._stop_pulse()
            with self._line_lock:
                self.hot.off(); self.cold.off()
            self._relation = None
        if task is not None:
            task.join(timeout)
