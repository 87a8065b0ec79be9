"""
Thermostat exceptions.

Simple hierarchy; nothing below ConfigError is fatal to the running process.
"""


class ThermostatError(Exception):
    """Base exception for the thermostat."""

    pass


class ConfigError(ThermostatError):
    """Startup configuration is invalid."""

    pass


class SensorError(ThermostatError):
    """Sensor read failed or timed out."""

    pass


class DisplayError(ThermostatError):
    """Display write failed."""

    pass


class RemoteError(ThermostatError):
    """Remote service unreachable or returned an error."""

    pass


class AuthError(RemoteError):
    """Device login rejected."""

    pass
