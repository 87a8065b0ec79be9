from __future__ import annotations
import logging, os
from dataclasses import dataclass, field
from typing import List, Optional

import yaml
from pydantic import ValidationError

from iot_thermostat.buttons import InputDispatcher
from iot_thermostat.config import AppConfig
from iot_thermostat.display import DisplayRenderer
from iot_thermostat.exceptions import ConfigError, SensorError
from iot_thermostat.feedback import IndicatorFeedbackController
from iot_thermostat.gpioio import ButtonIn, LedOut, MemoryLine, OutputLine, gpio_cleanup, gpio_init
from iot_thermostat.lcd import CharDisplay, ConsoleDisplay, LcdDisplay
from iot_thermostat.models import Mode
from iot_thermostat.poller import SensorPoller
from iot_thermostat.reconcile import RemoteReconciler
from iot_thermostat.remote import ApiClient
from iot_thermostat.scheduler import PeriodicTask
from iot_thermostat.sensors import Aht20Sensor, MockSensor, TemperatureSensor
from iot_thermostat.setpoint import SetpointStore
from iot_thermostat.state_machine import ModeStateMachine

log = logging.getLogger(__name__)

CONFIG_PATHS = ['config/config.yaml', 'config.yaml']

def load_config(path: str | None = None) -> AppConfig:
    for p in ([path] if path else []) + CONFIG_PATHS:
        if p and os.path.exists(p):
            try:
                with open(p, 'r') as f:
                    data = yaml.safe_load(f) or {}
                return AppConfig.model_validate(data)
            except (yaml.YAMLError, ValidationError) as exc:
                raise ConfigError(f"invalid config {p}: {exc}") from exc
    if path:
        raise ConfigError(f"config file not found: {path}")
    return AppConfig()

@dataclass
class Runtime:
    cfg: AppConfig
    setpoint: SetpointStore
    machine: ModeStateMachine
    feedback: IndicatorFeedbackController
    poller: SensorPoller
    renderer: DisplayRenderer
    dispatcher: InputDispatcher
    sensor: TemperatureSensor
    display: CharDisplay
    client: Optional[ApiClient] = None
    reconciler: Optional[RemoteReconciler] = None
    buttons: List[ButtonIn] = field(default_factory=list)
    tasks: List[PeriodicTask] = field(default_factory=list)
    uses_gpio: bool = False

    def start(self) -> None:
        self.machine.start()
        if self.client is not None:
            self.client.refresh()
        for t in self.tasks:
            t.start()
        log.info("Runtime started: %s", ", ".join(t.name for t in self.tasks))

    def stop(self) -> None:
        grace = self.cfg.control.shutdown_grace_s
        for t in self.tasks:
            t.stop()
        for t in self.tasks:
            t.join(grace)
        for b in self.buttons:
            b.close()
        self.feedback.shutdown(grace)
        self.display.close()
        self.sensor.close()
        if self.client is not None:
            self.client.close()
        if self.uses_gpio:
            gpio_cleanup()
        log.info("Runtime stopped")

def build_sensor(cfg: AppConfig) -> TemperatureSensor:
    if cfg.sensor.kind == 'mock':
        return MockSensor(cfg.control.default_setpoint_f)
    try:
        return Aht20Sensor(cfg.sensor.i2c_bus, cfg.sensor.address, cfg.sensor.timeout_s)
    except SensorError as exc:
        raise ConfigError(str(exc)) from exc

def build_display(cfg: AppConfig) -> CharDisplay:
    d = cfg.display
    if d.kind == 'console':
        return ConsoleDisplay(d.cols)
    return LcdDisplay(d.rs, d.e, d.data, d.cols, d.rows)

def build_client(cfg: AppConfig) -> Optional[ApiClient]:
    r = cfg.remote
    if not r.enabled:
        return None
    if not r.device_id or r.device_secret is None:
        raise ConfigError("remote.enabled needs remote.device_id and remote.device_secret")
    return ApiClient(r.root_address, r.device_id, r.device_secret, timeout_s=r.timeout_s)

def build_runtime(cfg: AppConfig, *, sensor: TemperatureSensor | None = None,
                  display: CharDisplay | None = None, hot: OutputLine | None = None,
                  cold: OutputLine | None = None, client: ApiClient | None = None) -> Runtime:
    """Construct and wire every component. Nothing runs until Runtime.start()."""
    uses_gpio = cfg.pins.kind == 'gpio'
    if uses_gpio:
        gpio_init()
    if hot is None:
        hot = LedOut(cfg.pins.red_led, cfg.pins.active_low, 'red') if uses_gpio else MemoryLine('red')
    if cold is None:
        cold = LedOut(cfg.pins.blue_led, cfg.pins.active_low, 'blue') if uses_gpio else MemoryLine('blue')
    sensor = sensor or build_sensor(cfg)
    display = display or build_display(cfg)
    client = client or build_client(cfg)
    ctl = cfg.control

    setpoint = SetpointStore(ctl.default_setpoint_f, ctl.step_f)
    feedback = IndicatorFeedbackController(hot, cold, sensor, setpoint, ctl.pulse_half_period_s)
    machine = ModeStateMachine(setpoint, {
        Mode.OFF: feedback.all_off,
        Mode.COOL: feedback.enter_cool,
        Mode.HEAT: feedback.enter_heat,
    })
    feedback.bind_state_machine(machine)
    setpoint.add_listener(feedback.on_setpoint_changed)

    poller = SensorPoller(sensor)
    renderer = DisplayRenderer(display, machine, setpoint, poller, cfg.display.alternate_ticks)
    poller.add_listener(feedback.on_reading)
    poller.add_listener(renderer.on_reading)
    dispatcher = InputDispatcher(machine)

    buttons: List[ButtonIn] = []
    if uses_gpio:
        p = cfg.pins
        for name, pin in (('cycle', p.cycle_button), ('raise', p.raise_button), ('lower', p.lower_button)):
            buttons.append(ButtonIn(pin, name, dispatcher.on_press, p.debounce_ms))

    tasks = [
        PeriodicTask('sensor-poller', ctl.sensor_period_s, poller.tick),
        PeriodicTask('display', ctl.display_period_s, renderer.tick),
    ]
    reconciler = None
    if client is not None:
        r = cfg.remote
        reconciler = RemoteReconciler(client, setpoint, machine, poller)
        tasks.append(PeriodicTask('remote-sync', r.sync_period_s, reconciler.sync))
        tasks.append(PeriodicTask('token-refresh', r.login_period_s, client.refresh, initial_delay_s=r.login_period_s))
        if r.push_enabled:
            tasks.append(PeriodicTask('remote-push', r.push_period_s, reconciler.push, initial_delay_s=r.push_period_s))

    return Runtime(cfg=cfg, setpoint=setpoint, machine=machine, feedback=feedback, poller=poller,
                   renderer=renderer, dispatcher=dispatcher, sensor=sensor, display=display,
                   client=client, reconciler=reconciler, buttons=buttons, tasks=tasks, uses_gpio=uses_gpio)
