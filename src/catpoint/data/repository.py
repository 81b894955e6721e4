"""
Security repository: durable storage for sensors, alarm status and arming status.

The repository owns no business rules. It keeps the current triple in memory,
writes each field independently to a key-value backend, and falls back to
documented defaults whenever persisted data is missing or unreadable.
"""

from __future__ import annotations

import abc
import logging
import threading
import uuid
from enum import Enum
from typing import TypeVar

from pydantic import TypeAdapter, ValidationError

from ..core.contracts import AlarmStatus, ArmingStatus, Sensor, SystemSnapshot
from .stores import KeyValueStore, StorageError

logger = logging.getLogger(__name__)

SENSORS_KEY = "SENSORS"
ALARM_STATUS_KEY = "ALARM_STATUS"
ARMING_STATUS_KEY = "ARMING_STATUS"

DEFAULT_ALARM_STATUS = AlarmStatus.NO_ALARM
DEFAULT_ARMING_STATUS = ArmingStatus.DISARMED

_SENSOR_LIST = TypeAdapter(list[Sensor])
_EnumT = TypeVar("_EnumT", bound=Enum)


class SecurityRepository(abc.ABC):
    """Storage contract consumed by the security service."""

    @abc.abstractmethod
    def load(self) -> SystemSnapshot:
        """Read persisted state, replacing whatever is held in memory."""

    @property
    @abc.abstractmethod
    def sensors(self) -> list[Sensor]:
        """Sorted copies of the stored sensors."""

    @property
    @abc.abstractmethod
    def alarm_status(self) -> AlarmStatus: ...

    @property
    @abc.abstractmethod
    def arming_status(self) -> ArmingStatus: ...

    @abc.abstractmethod
    def get_sensor(self, sensor_id: uuid.UUID) -> Sensor | None: ...

    @abc.abstractmethod
    def add_sensor(self, sensor: Sensor | None) -> bool: ...

    @abc.abstractmethod
    def remove_sensor(self, sensor: Sensor | None) -> bool: ...

    @abc.abstractmethod
    def replace_sensor(self, sensor_id: uuid.UUID, sensor: Sensor) -> bool:
        """Remove the sensor stored under `sensor_id`, then add `sensor`."""

    @abc.abstractmethod
    def set_alarm_status(self, status: AlarmStatus | None) -> bool: ...

    @abc.abstractmethod
    def set_arming_status(self, status: ArmingStatus | None) -> bool: ...

    def update_sensor(self, sensor: Sensor | None) -> bool:
        """Persist new field values for an existing sensor, matched by id."""
        if sensor is None:
            return True
        return self.replace_sensor(sensor.sensor_id, sensor)

    def snapshot(self) -> SystemSnapshot:
        return SystemSnapshot(
            sensors=tuple(self.sensors),
            alarm_status=self.alarm_status,
            arming_status=self.arming_status,
        )


class KeyValueSecurityRepository(SecurityRepository):
    """
    Repository backed by a `KeyValueStore` using three independent keys.

    Mutating calls return True when the backend write succeeded and False when
    it failed; the in-memory value is updated either way so the running
    session stays consistent. A single re-entrant lock covers each
    read-modify-write-persist sequence on the sensor collection.
    """

    def __init__(self, store: KeyValueStore) -> None:
        self._store = store
        self._lock = threading.RLock()
        self._sensors: dict[uuid.UUID, Sensor] = {}
        self._alarm_status = DEFAULT_ALARM_STATUS
        self._arming_status = DEFAULT_ARMING_STATUS

    @property
    def store(self) -> KeyValueStore:
        return self._store

    def load(self) -> SystemSnapshot:
        with self._lock:
            self._alarm_status = self._load_enum(
                ALARM_STATUS_KEY, AlarmStatus, DEFAULT_ALARM_STATUS
            )
            self._arming_status = self._load_enum(
                ARMING_STATUS_KEY, ArmingStatus, DEFAULT_ARMING_STATUS
            )
            self._sensors = {sensor.sensor_id: sensor for sensor in self._load_sensors()}
            logger.info(
                "Loaded %d sensors (alarm=%s, arming=%s)",
                len(self._sensors),
                self._alarm_status.value,
                self._arming_status.value,
            )
            return self.snapshot()

    @property
    def sensors(self) -> list[Sensor]:
        with self._lock:
            ordered = sorted(self._sensors.values(), key=Sensor.sort_key)
            return [sensor.model_copy() for sensor in ordered]

    @property
    def alarm_status(self) -> AlarmStatus:
        return self._alarm_status

    @property
    def arming_status(self) -> ArmingStatus:
        return self._arming_status

    def get_sensor(self, sensor_id: uuid.UUID) -> Sensor | None:
        with self._lock:
            sensor = self._sensors.get(sensor_id)
            return sensor.model_copy() if sensor is not None else None

    def add_sensor(self, sensor: Sensor | None) -> bool:
        if sensor is None:
            logger.debug("Ignoring request to add a missing sensor.")
            return True
        with self._lock:
            if sensor.sensor_id in self._sensors:
                return True
            self._sensors[sensor.sensor_id] = sensor.model_copy()
            return self._persist_sensors()

    def remove_sensor(self, sensor: Sensor | None) -> bool:
        if sensor is None:
            logger.debug("Ignoring request to remove a missing sensor.")
            return True
        with self._lock:
            if self._sensors.pop(sensor.sensor_id, None) is None:
                logger.debug("Sensor %s not stored; nothing to remove.", sensor.sensor_id)
                return True
            return self._persist_sensors()

    def replace_sensor(self, sensor_id: uuid.UUID, sensor: Sensor) -> bool:
        with self._lock:
            self._sensors.pop(sensor_id, None)
            self._sensors[sensor.sensor_id] = sensor.model_copy()
            return self._persist_sensors()

    def set_alarm_status(self, status: AlarmStatus | None) -> bool:
        if status is None:
            return True
        with self._lock:
            self._alarm_status = status
            return self._write(ALARM_STATUS_KEY, status.value)

    def set_arming_status(self, status: ArmingStatus | None) -> bool:
        if status is None:
            return True
        with self._lock:
            self._arming_status = status
            return self._write(ARMING_STATUS_KEY, status.value)

    def _persist_sensors(self) -> bool:
        ordered = sorted(self._sensors.values(), key=Sensor.sort_key)
        payload = _SENSOR_LIST.dump_json(ordered).decode("utf-8")
        return self._write(SENSORS_KEY, payload)

    def _write(self, key: str, value: str) -> bool:
        try:
            self._store.put(key, value)
        except StorageError:
            logger.exception("Failed to persist %s; keeping in-memory value.", key)
            return False
        return True

    def _read(self, key: str) -> str | None:
        try:
            return self._store.get(key)
        except StorageError as exc:
            logger.warning("Failed to load %s (%s); using default.", key, exc)
            return None

    def _load_enum(self, key: str, enum_cls: type[_EnumT], default: _EnumT) -> _EnumT:
        raw = self._read(key)
        if raw is None:
            return default
        try:
            return enum_cls(raw)
        except ValueError:
            logger.warning("Unknown %s value %r in storage; using %s.", key, raw, default.value)
            return default

    def _load_sensors(self) -> list[Sensor]:
        raw = self._read(SENSORS_KEY)
        if raw is None:
            return []
        try:
            return _SENSOR_LIST.validate_json(raw)
        except ValidationError as exc:
            logger.warning(
                "Stored sensors are corrupt (%d errors); starting with none.", exc.error_count()
            )
            return []


__all__ = [
    "ALARM_STATUS_KEY",
    "ARMING_STATUS_KEY",
    "DEFAULT_ALARM_STATUS",
    "DEFAULT_ARMING_STATUS",
    "KeyValueSecurityRepository",
    "SENSORS_KEY",
    "SecurityRepository",
]
