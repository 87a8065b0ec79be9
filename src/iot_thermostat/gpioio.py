from __future__ import annotations
import logging
from typing import Callable

from iot_thermostat.exceptions import ConfigError

try:
    import RPi.GPIO as GPIO
except (ImportError, RuntimeError):
    # not on a Pi; only pins.kind == 'mock' is usable
    GPIO = None

_log = logging.getLogger(__name__)

class OutputLine:
    """Binary output line interface used by the feedback controller."""
    name: str
    @property
    def is_on(self) -> bool: raise NotImplementedError
    def set(self, on: bool) -> None: raise NotImplementedError
    def on(self): self.set(True)
    def off(self): self.set(False)
    def toggle(self): self.set(not self.is_on)

class LedOut(OutputLine):
    def __init__(self, pin: int, active_low: bool = False, name: str = "led"):
        _require_gpio()
        self.pin = pin; self.active_low = active_low; self.name = name
        GPIO.setup(self.pin, GPIO.OUT, initial=self._level(False))
        self._state = False
    def _level(self, on: bool):
        if on:  return GPIO.LOW if self.active_low else GPIO.HIGH
        else:   return GPIO.HIGH if self.active_low else GPIO.LOW
    @property
    def is_on(self) -> bool: return self._state
    def set(self, on: bool):
        if on != self._state:
            GPIO.output(self.pin, self._level(on)); self._state = on

class MemoryLine(OutputLine):
    """In-process output line for desktop runs; logs level changes at DEBUG."""
    def __init__(self, name: str = "line"):
        self.name = name; self._state = False; self.writes = 0
    @property
    def is_on(self) -> bool: return self._state
    def set(self, on: bool):
        on = bool(on)
        if on != self._state:
            self._state = on; self.writes += 1
            _log.debug("%s -> %s", self.name, "ON" if on else "OFF")

class ButtonIn:
    """
    Active-low push button with internal pull-up. Calls on_press(name) on the
    falling edge; RPi.GPIO applies the debounce (bouncetime) before the callback.
    """
    def __init__(self, pin: int, name: str, on_press: Callable[[str], None], debounce_ms: int = 50):
        _require_gpio()
        self.pin = pin; self.name = name; self._on_press = on_press
        GPIO.setup(self.pin, GPIO.IN, pull_up_down=GPIO.PUD_UP)
        GPIO.add_event_detect(self.pin, GPIO.FALLING, callback=self._edge, bouncetime=int(debounce_ms))
    def _edge(self, channel):
        self._on_press(self.name)
    def close(self):
        GPIO.remove_event_detect(self.pin)

def _require_gpio():
    if GPIO is None:
        raise ConfigError("RPi.GPIO is not available; set pins.kind: mock off-device")

def gpio_init():
    _require_gpio()
    GPIO.setmode(GPIO.BCM); GPIO.setwarnings(False)

def gpio_cleanup():
    if GPIO is None:
        return
    try:
        GPIO.cleanup()
    except RuntimeError as exc:
        _log.warning("GPIO cleanup failed: %s", exc)
