from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Dict, List, Literal, Optional

class Pins(BaseModel):
    kind: Literal['mock', 'gpio'] = 'mock'
    red_led: int = 18       # BCM, heat indicator
    blue_led: int = 23      # BCM, cool indicator
    cycle_button: int = 24
    raise_button: int = 25
    lower_button: int = 12
    active_low: bool = False
    debounce_ms: int = 50

class Sensor(BaseModel):
    kind: Literal['mock', 'aht20'] = 'mock'
    i2c_bus: int = 1
    address: int = 0x38
    timeout_s: float = Field(default=0.2, gt=0)

class Display(BaseModel):
    kind: Literal['console', 'lcd'] = 'console'
    cols: int = 16
    rows: int = 2
    alternate_ticks: int = Field(default=10, ge=1)
    # HD44780 4-bit wiring (BCM)
    rs: int = 17
    e: int = 27
    data: List[int] = Field(default_factory=lambda: [5, 6, 13, 26])

    @field_validator('data')
    @classmethod
    def _four_data_pins(cls, v):
        if len(v) != 4:
            raise ValueError('4-bit mode needs exactly four data pins')
        return v

class Control(BaseModel):
    default_setpoint_f: float = Field(default=72.0, allow_inf_nan=False)
    step_f: float = 0.5
    pulse_half_period_s: float = Field(default=0.6, gt=0)
    sensor_period_s: float = Field(default=1.0, gt=0)
    display_period_s: float = Field(default=1.0, gt=0)
    shutdown_grace_s: float = 2.0

class Remote(BaseModel):
    enabled: bool = False
    root_address: str = 'http://localhost:3000'
    device_id: Optional[str] = None
    device_secret: Optional[str] = None
    sync_period_s: float = Field(default=15.0, gt=0)
    push_period_s: float = Field(default=10.0, gt=0)
    login_period_s: float = Field(default=50.0, gt=0)
    timeout_s: float = Field(default=5.0, gt=0)
    push_enabled: bool = True

    @model_validator(mode="after")
    def _request_fits_sync_period(self):
        # timeout_s bounds a whole request (login, send and one retry)
        if self.timeout_s > self.sync_period_s:
            raise ValueError("remote.timeout_s must not exceed remote.sync_period_s")
        return self

class Logging(BaseModel):
    enabled: bool = True
    level: str = 'INFO'
    file: Optional[str] = None
    # per-logger overrides, e.g. {'iot_thermostat.feedback': 'DEBUG'}
    levels: Dict[str, str] = Field(default_factory=lambda: {'iot_thermostat.gpioio': 'INFO'})

class AppConfig(BaseModel):
    pins: Pins = Field(default_factory=Pins); sensor: Sensor = Field(default_factory=Sensor)
    display: Display = Field(default_factory=Display); control: Control = Field(default_factory=Control)
    remote: Remote = Field(default_factory=Remote); logging: Logging = Field(default_factory=Logging)
