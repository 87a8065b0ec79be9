import threading

import pytest

from iot_thermostat.scheduler import PeriodicTask

from helpers import wait_for

def test_runs_repeatedly_until_stopped():
    ticks = []
    t = PeriodicTask("t", 0.01, lambda: ticks.append(1))
    t.start()
    assert wait_for(lambda: len(ticks) >= 3)
    t.stop()
    assert t.join(1.0) and not t.running
    n = len(ticks)
    assert not wait_for(lambda: len(ticks) != n, timeout=0.05)

def test_survives_tick_errors():
    calls = []
    def flaky():
        calls.append(1)
        if len(calls) == 1:
            raise RuntimeError("transient")
    t = PeriodicTask("flaky", 0.01, flaky)
    t.start()
    assert wait_for(lambda: len(calls) >= 2)
    t.stop(); t.join(1.0)

def test_in_flight_tick_completes_on_stop():
    started, release, done = threading.Event(), threading.Event(), []
    def slow():
        started.set(); release.wait(1.0); done.append(1)
    t = PeriodicTask("slow", 10.0, slow)
    t.start()
    assert started.wait(1.0)
    t.stop(); release.set()
    assert t.join(1.0)
    assert done == [1]

def test_initial_delay_and_stop_before_first_tick():
    calls = []
    t = PeriodicTask("late", 0.01, lambda: calls.append(1), initial_delay_s=5.0)
    t.start(); t.stop()
    assert t.join(1.0) and calls == []

def test_rejects_bad_period_and_double_start():
    with pytest.raises(ValueError):
        PeriodicTask("zero", 0, lambda: None)
    t = PeriodicTask("once", 1.0, lambda: None, initial_delay_s=5.0)
    t.start()
    with pytest.raises(RuntimeError):
        t.start()
    t.stop(); t.join(1.0)
