"""Raspberry Pi IoT thermostat: mode machine, LED feedback, LCD status and remote sync."""

__version__ = "0.1.0"
