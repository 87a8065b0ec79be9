from __future__ import annotations
import logging
from typing import List

from iot_thermostat.exceptions import ConfigError, DisplayError

class CharDisplay:
    def clear(self) -> None: raise NotImplementedError
    def render(self, line1: str, line2: str) -> None: raise NotImplementedError
    def close(self) -> None: pass

class ConsoleDisplay(CharDisplay):
    """Stands in for the LCD off-device; logs each frame that differs from the last."""
    def __init__(self, cols: int = 16):
        self.cols = cols
        self.frame: tuple[str, str] = ("", "")
        self._log = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
    def clear(self) -> None:
        pass
    def render(self, line1: str, line2: str) -> None:
        frame = (line1[:self.cols], line2[:self.cols])
        if frame != self.frame:
            self._log.info("| %-*s | %-*s |", self.cols, frame[0], self.cols, frame[1])
        self.frame = frame

class LcdDisplay(CharDisplay):
    """HD44780 character LCD in 4-bit GPIO mode (default RS=17 E=27 D4-D7=5,6,13,26)."""
    def __init__(self, rs: int, e: int, data: List[int], cols: int = 16, rows: int = 2):
        try:
            import RPi.GPIO as GPIO
            from RPLCD.gpio import CharLCD
        except (ImportError, RuntimeError) as exc:
            raise ConfigError(f"LCD needs RPi.GPIO and RPLCD: {exc}") from exc
        self.cols = cols; self.rows = rows
        self._lcd = CharLCD(numbering_mode=GPIO.BCM, cols=cols, rows=rows,
                            pin_rs=rs, pin_rw=None, pin_e=e, pins_data=list(data),
                            auto_linebreaks=False)
        self._log = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def clear(self) -> None:
        try:
            self._lcd.clear()
        except (OSError, RuntimeError) as exc:
            raise DisplayError(f"LCD clear failed: {exc}") from exc

    def render(self, line1: str, line2: str) -> None:
        try:
            for row, text in enumerate((line1, line2)[:self.rows]):
                self._lcd.cursor_pos = (row, 0)
                self._lcd.write_string(text[:self.cols].ljust(self.cols))
        except (OSError, RuntimeError) as exc:
            raise DisplayError(f"LCD write failed: {exc}") from exc

    def close(self) -> None:
        try:
            self._lcd.close(clear=True)
        except (OSError, RuntimeError) as exc:
            self._log.warning("LCD close failed: %s", exc)
