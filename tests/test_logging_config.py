import logging

from iot_thermostat.config import AppConfig
from iot_thermostat.logging_config import (apply_logger_levels, parse_logger_levels,
                                           resolve_logging_from_env_and_cfg)

ENV = ("IOT_LOGGING", "IOT_LOG_LEVEL", "IOT_LOG_FILE", "IOT_LOG_LEVELS")

def test_cfg_used_when_env_unset(monkeypatch):
    for k in ENV:
        monkeypatch.delenv(k, raising=False)
    cfg = AppConfig.model_validate({"logging": {"enabled": True, "level": "DEBUG", "file": "/tmp/t.log"}})
    assert resolve_logging_from_env_and_cfg(cfg) == (True, "DEBUG", "/tmp/t.log", {"iot_thermostat.gpioio": "INFO"})

def test_env_wins_over_cfg(monkeypatch):
    monkeypatch.setenv("IOT_LOGGING", "0")
    monkeypatch.setenv("IOT_LOG_LEVEL", "WARNING")
    monkeypatch.delenv("IOT_LOG_FILE", raising=False)
    monkeypatch.delenv("IOT_LOG_LEVELS", raising=False)
    cfg = AppConfig.model_validate({"logging": {"enabled": True, "level": "DEBUG", "levels": {}}})
    assert resolve_logging_from_env_and_cfg(cfg) == (False, "WARNING", None, {})

def test_env_levels_merge_over_cfg_levels(monkeypatch):
    for k in ENV:
        monkeypatch.delenv(k, raising=False)
    monkeypatch.setenv("IOT_LOG_LEVELS", "iot_thermostat.gpioio=debug, iot_thermostat.remote=WARNING")
    cfg = AppConfig.model_validate({"logging": {"levels": {"iot_thermostat.feedback": "DEBUG"}}})
    _, _, _, levels = resolve_logging_from_env_and_cfg(cfg)
    assert levels == {"iot_thermostat.feedback": "DEBUG", "iot_thermostat.gpioio": "DEBUG",
                      "iot_thermostat.remote": "WARNING"}

def test_parse_skips_malformed_items():
    assert parse_logger_levels("a=INFO,,b,=DEBUG,c=") == {"a": "INFO"}
    assert parse_logger_levels(None) == {}

def test_pulse_toggle_logs_quiet_by_default(caplog):
    log = logging.getLogger("iot_thermostat.gpioio")
    old = log.level
    try:
        apply_logger_levels({"iot_thermostat.gpioio": "INFO"})
        with caplog.at_level(logging.DEBUG):
            logging.getLogger("iot_thermostat.gpioio").debug("red -> ON")
            logging.getLogger("iot_thermostat.feedback").debug("crossing")
        messages = [r.getMessage() for r in caplog.records]
        assert "crossing" in messages and "red -> ON" not in messages
    finally:
        log.setLevel(old)
