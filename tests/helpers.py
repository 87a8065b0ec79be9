import time

from iot_thermostat.exceptions import SensorError
from iot_thermostat.models import SensorReading
from iot_thermostat.sensors import TemperatureSensor, f_to_c

class FakeSensor(TemperatureSensor):
    def __init__(self, temp_f=72.0):
        self.temp_f = temp_f; self.fail = False; self.reads = 0
    def read(self):
        self.reads += 1
        if self.fail:
            raise SensorError("bus timeout")
        return SensorReading(humidity=40.0, temp_f=self.temp_f, temp_c=f_to_c(self.temp_f))

def reading(temp_f):
    return SensorReading(humidity=40.0, temp_f=temp_f, temp_c=f_to_c(temp_f))

def wait_for(cond, timeout=2.0):
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if cond():
            return True
        time.sleep(0.01)
    return cond()
