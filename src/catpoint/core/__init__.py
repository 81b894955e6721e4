"""
Core of the Catpoint security system.

Exposes the entity contracts, the status listener registry, the configuration
service and the alarm state machine.
"""

from .config import ConfigError, ConfigService, ConfigSnapshot
from .contracts import (
    AlarmStatus,
    ArmingStatus,
    Sensor,
    SensorType,
    StatusListener,
    SystemSnapshot,
)
from .listeners import LoggingStatusListener, StatusListenerRegistry
from .security_service import SecurityService

__all__ = [
    "AlarmStatus",
    "ArmingStatus",
    "ConfigError",
    "ConfigService",
    "ConfigSnapshot",
    "LoggingStatusListener",
    "SecurityService",
    "Sensor",
    "SensorType",
    "StatusListener",
    "StatusListenerRegistry",
    "SystemSnapshot",
]
