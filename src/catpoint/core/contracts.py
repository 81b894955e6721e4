"""
Contracts and entity schemas shared by the Catpoint security core.

Sensors are pydantic models so they serialize straight into the persisted
preference layout, while the two status enumerations are closed string enums
whose member names are the values written to storage.
"""

from __future__ import annotations

import uuid
from enum import Enum
from typing import Protocol, runtime_checkable

from pydantic import BaseModel, ConfigDict, Field


class SensorType(str, Enum):
    """Kinds of binary sensors the system understands."""

    DOOR = "DOOR"
    WINDOW = "WINDOW"
    MOTION = "MOTION"


class ArmingStatus(str, Enum):
    """Guard mode selected by the occupants."""

    DISARMED = "DISARMED"
    ARMED_HOME = "ARMED_HOME"
    ARMED_AWAY = "ARMED_AWAY"

    @property
    def description(self) -> str:
        return _ARMING_DESCRIPTIONS[self]

    @property
    def is_armed(self) -> bool:
        return self is not ArmingStatus.DISARMED


class AlarmStatus(str, Enum):
    """Escalation level, declared from least to most severe."""

    NO_ALARM = "NO_ALARM"
    PENDING_ALARM = "PENDING_ALARM"
    ALARM = "ALARM"

    @property
    def description(self) -> str:
        return _ALARM_DESCRIPTIONS[self]

    @property
    def severity(self) -> int:
        return list(AlarmStatus).index(self)


_ARMING_DESCRIPTIONS = {
    ArmingStatus.DISARMED: "Disarmed",
    ArmingStatus.ARMED_HOME: "Armed - At Home",
    ArmingStatus.ARMED_AWAY: "Armed - Away",
}

_ALARM_DESCRIPTIONS = {
    AlarmStatus.NO_ALARM: "Cool and Good",
    AlarmStatus.PENDING_ALARM: "I'm in Danger...",
    AlarmStatus.ALARM: "Awooga!",
}


class Sensor(BaseModel):
    """
    A door, window or motion sensor.

    Identity is carried by `sensor_id` alone: two instances with the same id
    compare equal and hash alike even when their name or activation differ.
    """

    model_config = ConfigDict(validate_assignment=True)

    sensor_id: uuid.UUID = Field(
        default_factory=uuid.uuid4, description="Stable identity assigned on creation."
    )
    name: str = Field(description="Human readable label, not unique.")
    sensor_type: SensorType
    active: bool = Field(default=False)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Sensor):
            return NotImplemented
        return self.sensor_id == other.sensor_id

    def __hash__(self) -> int:
        return hash(self.sensor_id)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, Sensor):
            return NotImplemented
        return self.sort_key() < other.sort_key()

    def sort_key(self) -> tuple[str, str, str]:
        """Listing order: name, then type, then id. Activation never affects it."""
        return (self.name, self.sensor_type.value, str(self.sensor_id))


class SystemSnapshot(BaseModel):
    """The durable triple returned by a repository load."""

    model_config = ConfigDict(frozen=True)

    sensors: tuple[Sensor, ...] = Field(default_factory=tuple)
    alarm_status: AlarmStatus = Field(default=AlarmStatus.NO_ALARM)
    arming_status: ArmingStatus = Field(default=ArmingStatus.DISARMED)


@runtime_checkable
class StatusListener(Protocol):
    """Observer notified by the security service after state changes."""

    def on_arming_status(self, status: ArmingStatus) -> None: ...

    def on_alarm_status(self, status: AlarmStatus) -> None: ...

    def on_cat_detected(self, detected: bool) -> None: ...

    def on_sensor_status_changed(self) -> None: ...


__all__ = [
    "AlarmStatus",
    "ArmingStatus",
    "Sensor",
    "SensorType",
    "StatusListener",
    "SystemSnapshot",
]
