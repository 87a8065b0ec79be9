from __future__ import annotations
import logging, os, sys
from logging.handlers import RotatingFileHandler
from typing import Dict, Mapping

ENV_ENABLED = "IOT_LOGGING"
ENV_LEVEL = "IOT_LOG_LEVEL"
ENV_FILE = "IOT_LOG_FILE"
ENV_LEVELS = "IOT_LOG_LEVELS"

# Output lines log every level change at DEBUG; while a LED pulses that is
# two lines per second per LED, which drowns the rest of a DEBUG session.
DEFAULT_LOGGER_LEVELS: Dict[str, str] = {"iot_thermostat.gpioio": "INFO"}

class ShortFormatter(logging.Formatter):
    """
    Formatter that exposes %(shortname)s = last component of logger name (e.g., SensorPoller)
    """
    def format(self, record: logging.LogRecord) -> str:
        record.shortname = record.name.rsplit('.', 1)[-1]
        return super().format(record)

def _to_level(level: str | int, default: int = logging.INFO) -> int:
    lvl = logging.getLevelName(level.upper()) if isinstance(level, str) else level
    return lvl if isinstance(lvl, int) else default

def parse_logger_levels(text: str | None) -> Dict[str, str]:
    """Parse 'iot_thermostat.feedback=DEBUG,iot_thermostat.remote=WARNING'; malformed items are skipped."""
    out: Dict[str, str] = {}
    for item in (text or "").split(","):
        name, sep, lvl = item.partition("=")
        if sep and name.strip() and lvl.strip():
            out[name.strip()] = lvl.strip().upper()
    return out

def apply_logger_levels(levels: Mapping[str, str | int]) -> None:
    for name, lvl in levels.items():
        logging.getLogger(name).setLevel(_to_level(lvl, logging.NOTSET))

def setup_logging(enabled: bool = True, level: str | int = "INFO", log_file: str | None = None,
                  logger_levels: Mapping[str, str | int] | None = None) -> None:
    """
    Configure root logging once. Format: timestamp level [logger.func] message
    Enable/disable with env IOT_LOGGING=1/0; level with IOT_LOG_LEVEL=INFO/DEBUG/etc;
    per-logger overrides with IOT_LOG_LEVELS=name=LEVEL,...
    """
    # If already configured, do not duplicate handlers
    if getattr(setup_logging, "_configured", False):
        return

    if not enabled:
        logging.disable(logging.CRITICAL)
        setup_logging._configured = True
        return

    logging.disable(logging.NOTSET)
    fmt = "%(asctime)s %(levelname)s [%(shortname)s.%(funcName)s] %(message)s"
    datefmt = "%Y-%m-%d %H:%M:%S"
    formatter = ShortFormatter(fmt=fmt, datefmt=datefmt)

    handlers: list[logging.Handler] = []
    sh = logging.StreamHandler(stream=sys.stdout)
    sh.setFormatter(formatter)
    handlers.append(sh)

    file_error: OSError | None = None
    if log_file:
        try:
            os.makedirs(os.path.dirname(log_file) or ".", exist_ok=True)
            fh = RotatingFileHandler(log_file, maxBytes=512_000, backupCount=3)
            fh.setFormatter(formatter)
            handlers.append(fh)
        except OSError as exc:
            # keep console
            file_error = exc

    logging.basicConfig(level=_to_level(level), handlers=handlers, force=True)
    apply_logger_levels(DEFAULT_LOGGER_LEVELS if logger_levels is None else logger_levels)
    if file_error is not None:
        logging.getLogger(__name__).warning("Log file %s unavailable: %s", log_file, file_error)
    setup_logging._configured = True

def resolve_logging_from_env_and_cfg(cfg) -> tuple[bool, str, str | None, Dict[str, str]]:
    """
    Determine enabled/level/file/per-logger levels using env first, then cfg.logging if present.
    Env:
      IOT_LOGGING=1|0, IOT_LOG_LEVEL=DEBUG|INFO|..., IOT_LOG_FILE=/path/to/log,
      IOT_LOG_LEVELS=iot_thermostat.feedback=DEBUG,... (merged over cfg.logging.levels)
    """
    env_enabled = os.getenv(ENV_ENABLED)
    enabled = (env_enabled is None) or (env_enabled.lower() not in ("0", "false", "no"))
    level = os.getenv(ENV_LEVEL, "INFO")
    log_file = os.getenv(ENV_FILE)
    levels = dict(DEFAULT_LOGGER_LEVELS)

    lcfg = getattr(cfg, "logging", None)
    if lcfg is not None:
        if env_enabled is None:
            enabled = bool(lcfg.enabled)
        if os.getenv(ENV_LEVEL) is None:
            level = str(lcfg.level)
        if os.getenv(ENV_FILE) is None and lcfg.file:
            log_file = str(lcfg.file)
        levels = dict(lcfg.levels)

    levels.update(parse_logger_levels(os.getenv(ENV_LEVELS)))
    return enabled, level, log_file, levels
