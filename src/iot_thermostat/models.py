from __future__ import annotations
import math
from dataclasses import dataclass
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Mode(Enum):
    OFF = "OFF"
    COOL = "COOL"
    HEAT = "HEAT"

    @classmethod
    def parse(cls, value: Any) -> Optional["Mode"]:
        """Map a remote mode string onto a Mode; None when unrecognized."""
        if not isinstance(value, str):
            return None
        try:
            return cls(value.strip().upper())
        except ValueError:
            return None


class Event(Enum):
    CYCLE = "cycle"
    RAISE = "raise"
    LOWER = "lower"


class Relation(Enum):
    BELOW = -1
    EQUAL = 0
    ABOVE = 1
    UNKNOWN = None


def relation_for(temp: float | None, setpoint: float | None) -> Relation:
    if temp is None or setpoint is None or math.isnan(temp) or math.isnan(setpoint):
        return Relation.UNKNOWN
    if temp < setpoint:
        return Relation.BELOW
    if temp > setpoint:
        return Relation.ABOVE
    return Relation.EQUAL


@dataclass(frozen=True)
class SensorReading:
    humidity: float
    temp_f: float
    temp_c: float


class RemoteState(BaseModel):
    """
    Device document as stored by the backend (GET/PUT /api/iot/<id>).

    Fields parse independently: a malformed value becomes None instead of
    rejecting the whole document.
    """
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: Optional[str] = Field(default=None, alias="_id")
    name: Optional[str] = None
    state: Optional[str] = None
    set_temp: Optional[float] = Field(default=None, alias="setTemp")
    current_temp: Optional[float] = Field(default=None, alias="currentTemp")
    last_checked: Optional[str] = Field(default=None, alias="lastChecked")
    auth_users: List[str] = Field(default_factory=list)

    @field_validator("set_temp", "current_temp", mode="before")
    @classmethod
    def _lenient_float(cls, v):
        if v is None or isinstance(v, bool):
            return None
        try:
            return float(v)
        except (TypeError, ValueError):
            return None

    @field_validator("id", "name", "state", "last_checked", mode="before")
    @classmethod
    def _lenient_str(cls, v):
        return v if isinstance(v, str) else None

    @field_validator("auth_users", mode="before")
    @classmethod
    def _lenient_users(cls, v):
        if not isinstance(v, (list, tuple)):
            return []
        return [str(u) for u in v if u is not None]

    @property
    def mode(self) -> Optional[Mode]:
        return Mode.parse(self.state)
