"""
Catpoint - home security core

Tracks door, window and motion sensors, the arming mode and the alarm level,
and escalates or relaxes the alarm using sensor activity and camera-based
cat detection.
"""

__version__ = "0.1.0"

from catpoint.core import (
    AlarmStatus,
    ArmingStatus,
    SecurityService,
    Sensor,
    SensorType,
    StatusListener,
)
from catpoint.data import KeyValueSecurityRepository, SecurityRepository

__all__ = [
    "AlarmStatus",
    "ArmingStatus",
    "KeyValueSecurityRepository",
    "SecurityRepository",
    "SecurityService",
    "Sensor",
    "SensorType",
    "StatusListener",
]
