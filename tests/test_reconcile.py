import math

from iot_thermostat.exceptions import RemoteError
from iot_thermostat.models import Event, Mode, RemoteState
from iot_thermostat.reconcile import RemoteReconciler
from iot_thermostat.setpoint import SetpointStore
from iot_thermostat.state_machine import ModeStateMachine

from helpers import reading

class FakeClient:
    def __init__(self, state=None, error=None):
        self.state = state; self.error = error; self.pushed = []; self.push_error = None
    def fetch_state(self):
        if self.error: raise self.error
        return self.state
    def push_state(self, current_temp):
        if self.push_error: raise self.push_error
        self.pushed.append(current_temp)

class StuckMachine:
    """Accepts CYCLE but never leaves OFF."""
    mode = Mode.OFF
    def __init__(self): self.sent = []
    def send(self, event): self.sent.append(event); return self.mode

def remote(**kw):
    return RemoteState.model_validate(kw)

def build(state=None, error=None):
    sp = SetpointStore(); machine = ModeStateMachine(sp)
    client = FakeClient(state, error)
    return RemoteReconciler(client, sp, machine), client, sp, machine

def test_applies_setpoint_and_mode():
    rec, _, sp, machine = build(remote(state="HEAT", setTemp=68.5))
    assert rec.sync() is True
    assert sp.get() == 68.5 and machine.mode is Mode.HEAT

def test_already_in_target_mode_sends_nothing():
    rec, _, _, machine = build(remote(state="OFF", setTemp=72))
    entered = []
    machine.set_entry_action(Mode.COOL, lambda: entered.append(Mode.COOL))
    rec.sync()
    assert machine.mode is Mode.OFF and entered == []

def test_mode_string_is_case_insensitive():
    rec, _, _, machine = build(remote(state="cool"))
    rec.sync()
    assert machine.mode is Mode.COOL

def test_unrecognized_mode_aborts_after_setpoint():
    rec, _, sp, machine = build(remote(state="AUTO", setTemp=70))
    assert rec.sync() is False
    assert machine.mode is Mode.OFF
    assert sp.get() == 70.0

def test_remote_unavailable_changes_nothing():
    rec, _, sp, machine = build(error=RemoteError("connection refused"))
    assert rec.sync() is False
    assert sp.get() == 72.0 and machine.mode is Mode.OFF

def test_non_finite_setpoint_rejected_mode_still_applied():
    rec, _, sp, machine = build(remote(state="COOL", setTemp=math.nan))
    seen = []; sp.add_listener(seen.append)
    assert rec.sync() is True
    assert sp.get() == 72.0 and seen == []
    assert machine.mode is Mode.COOL

def test_unreachable_target_is_bounded():
    sp = SetpointStore(); stuck = StuckMachine()
    rec = RemoteReconciler(FakeClient(remote(state="HEAT")), sp, stuck)
    assert rec.sync() is True
    assert stuck.sent == [Event.CYCLE] * len(Mode)

def test_push_reports_latest_reading():
    class Poller:
        latest = reading(71.25); healthy = True
    sp = SetpointStore(); client = FakeClient()
    rec = RemoteReconciler(client, sp, ModeStateMachine(sp), Poller())
    assert rec.push() is True
    assert client.pushed == [71.25]

def test_push_without_reading_is_skipped():
    rec, client, _, _ = build()
    assert rec.push() is False and client.pushed == []

def test_push_failure_is_swallowed():
    rec, client, _, _ = build()
    client.push_error = RemoteError("503")
    assert rec.push(reading(70.0)) is False

def test_push_skipped_while_sensor_failing():
    class Poller:
        latest = reading(71.25); healthy = False
    sp = SetpointStore(); client = FakeClient()
    rec = RemoteReconciler(client, sp, ModeStateMachine(sp), Poller())
    assert rec.push() is False
    assert client.pushed == []
    assert rec.push(reading(70.0)) is True and client.pushed == [70.0]
