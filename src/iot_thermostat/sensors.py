from __future__ import annotations
import logging, random, threading, time

from smbus2 import SMBus, i2c_msg

from iot_thermostat.exceptions import SensorError
from iot_thermostat.models import SensorReading

def c_to_f(c: float) -> float:
    return (c * 9.0 / 5.0) + 32.0

def f_to_c(f: float) -> float:
    return (f - 32.0) * 5.0 / 9.0

class TemperatureSensor:
    def read(self) -> SensorReading: raise NotImplementedError
    def close(self) -> None: pass

class MockSensor(TemperatureSensor):
    def __init__(self, start_f: float = 72.0, humidity: float = 45.0):
        self.t = start_f; self.h = humidity; self._lock = threading.Lock()
    def read(self) -> SensorReading:
        # Small random walk to simulate environment
        with self._lock:
            self.t += random.uniform(-0.05, 0.05)
            t_f = round(self.t, 2)
        return SensorReading(humidity=self.h, temp_f=t_f, temp_c=round(f_to_c(t_f), 2))

AHT20_ADDR = 0x38
CMD_INIT = (0xBE, 0x08, 0x00)
CMD_MEASURE = (0xAC, 0x33, 0x00)
MEASURE_WAIT_S = 0.08
STATUS_BUSY = 0x80
STATUS_CALIBRATED = 0x08
FULL_SCALE = 1 << 20

def decode_aht20(data: bytes | list[int]) -> SensorReading:
    """Decode a 6-byte AHT20 frame: status, 20-bit humidity, 20-bit temperature."""
    if len(data) < 6:
        raise SensorError(f"short AHT20 frame ({len(data)} bytes)")
    if data[0] & STATUS_BUSY:
        raise SensorError("AHT20 still busy")
    raw_h = (data[1] << 12) | (data[2] << 4) | (data[3] >> 4)
    raw_t = ((data[3] & 0x0F) << 16) | (data[4] << 8) | data[5]
    humidity = raw_h * 100.0 / FULL_SCALE
    temp_c = raw_t * 200.0 / FULL_SCALE - 50.0
    return SensorReading(humidity=humidity, temp_f=c_to_f(temp_c), temp_c=temp_c)

class Aht20Sensor(TemperatureSensor):
    """
    AHT20 humidity/temperature sensor on I2C (default bus 1, address 0x38).

    Reads are serialized on a lock since the poller and mode-entry actions
    share the bus. A read that overruns timeout_s is reported as a failure.
    """
    def __init__(self, bus: int = 1, address: int = AHT20_ADDR, timeout_s: float = 0.2, smbus=None):
        self.address = address; self.timeout_s = timeout_s
        self._lock = threading.Lock()
        self._log = logging.getLogger(f"{__name__}.{self.__class__.__name__}")
        try:
            self._bus = smbus if smbus is not None else SMBus(bus)
        except OSError as exc:
            raise SensorError(f"cannot open I2C bus {bus}: {exc}") from exc
        self._init_chip()

    def _init_chip(self):
        try:
            status = self._bus.read_byte(self.address)
            if not status & STATUS_CALIBRATED:
                self._bus.write_i2c_block_data(self.address, CMD_INIT[0], list(CMD_INIT[1:]))
                time.sleep(0.01)
        except OSError as exc:
            # first measurement will surface a persistent fault
            self._log.warning("AHT20 init at 0x%02x failed: %s", self.address, exc)

    def read(self) -> SensorReading:
        with self._lock:
            start = time.monotonic()
            try:
                self._bus.write_i2c_block_data(self.address, CMD_MEASURE[0], list(CMD_MEASURE[1:]))
                time.sleep(MEASURE_WAIT_S)
                msg = i2c_msg.read(self.address, 6)
                self._bus.i2c_rdwr(msg)
                data = list(msg)
            except OSError as exc:
                raise SensorError(f"AHT20 I/O error: {exc}") from exc
            elapsed = time.monotonic() - start
        if elapsed > self.timeout_s:
            raise SensorError(f"AHT20 read took {elapsed * 1000:.0f}ms")
        return decode_aht20(data)

    def close(self) -> None:
        try:
            self._bus.close()
        except OSError as exc:
            self._log.warning("I2C close failed: %s", exc)
