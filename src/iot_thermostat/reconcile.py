from __future__ import annotations
import logging
from typing import Optional

from iot_thermostat.exceptions import RemoteError
from iot_thermostat.models import Event, Mode, SensorReading

class RemoteReconciler:
    """
    Brings local setpoint and mode in line with the remote desired state.

    The machine only exposes the CYCLE ring, so mode convergence is a
    best-effort nudge bounded to len(Mode) events per sync.
    """
    def __init__(self, client, setpoint, machine, poller=None):
        self._client = client
        self._setpoint = setpoint
        self._machine = machine
        self._poller = poller
        self._log = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    def sync(self) -> bool:
        """One reconciliation tick. Returns True when a remote state was applied."""
        try:
            state = self._client.fetch_state()
        except RemoteError as exc:
            self._log.warning("Remote state unavailable: %s", exc)
            return False

        # non-finite values are refused by the store itself
        if state.set_temp is not None:
            self._setpoint.set(state.set_temp)

        target: Optional[Mode] = state.mode
        if target is None:
            self._log.warning("Unrecognized remote mode %r; leaving mode as is", state.state)
            return False

        attempts = 0
        while self._machine.mode is not target and attempts < len(Mode):
            self._machine.send(Event.CYCLE)
            attempts += 1
        if self._machine.mode is not target:
            self._log.info("Mode still %s after %d cycles (remote wants %s)",
                           self._machine.mode.name, attempts, target.name)
        elif attempts:
            self._log.info("Mode reconciled to %s in %d cycle(s)", target.name, attempts)
        return True

    def push(self, reading: Optional[SensorReading] = None) -> bool:
        """Report the current temperature; failures are logged and dropped."""
        if reading is None and self._poller is not None:
            # latest survives a failing sensor; do not report it as current
            if not self._poller.healthy:
                return False
            reading = self._poller.latest
        if reading is None:
            return False
        try:
            self._client.push_state(reading.temp_f)
        except RemoteError as exc:
            self._log.warning("Push of current temperature failed: %s", exc)
            return False
        return True
