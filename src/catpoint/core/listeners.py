"""
Status listener registry used by the security service to fan out changes.
"""

from __future__ import annotations

import logging

from .contracts import AlarmStatus, ArmingStatus, StatusListener

logger = logging.getLogger(__name__)


class StatusListenerRegistry:
    """
    Idempotent set of listeners with one dispatch method per notification kind.

    Listeners are kept in an insertion-ordered mapping so registering the same
    listener twice is harmless. Callers must not add or remove listeners from
    inside a callback; dispatch iterates the live mapping.
    """

    def __init__(self) -> None:
        self._listeners: dict[StatusListener, None] = {}

    def __len__(self) -> int:
        return len(self._listeners)

    def __contains__(self, listener: object) -> bool:
        return listener in self._listeners

    def add(self, listener: StatusListener) -> None:
        """Register a listener; re-registering is a no-op."""
        if listener in self._listeners:
            return
        self._listeners[listener] = None
        logger.debug("Registered status listener %s", listener)

    def remove(self, listener: StatusListener) -> None:
        """Unregister a listener if present."""
        if listener in self._listeners:
            del self._listeners[listener]
            logger.debug("Removed status listener %s", listener)

    def notify_arming_status(self, status: ArmingStatus) -> None:
        for listener in self._listeners:
            listener.on_arming_status(status)

    def notify_alarm_status(self, status: AlarmStatus) -> None:
        for listener in self._listeners:
            listener.on_alarm_status(status)

    def notify_cat_detected(self, detected: bool) -> None:
        for listener in self._listeners:
            listener.on_cat_detected(detected)

    def notify_sensor_status_changed(self) -> None:
        for listener in self._listeners:
            listener.on_sensor_status_changed()


class LoggingStatusListener:
    """Listener that writes every notification to the application log."""

    def __init__(self, log: logging.Logger | None = None) -> None:
        self._log = log or logger

    def on_arming_status(self, status: ArmingStatus) -> None:
        self._log.info("Arming status changed to %s (%s)", status.value, status.description)

    def on_alarm_status(self, status: AlarmStatus) -> None:
        if status is AlarmStatus.ALARM:
            self._log.warning("Alarm status changed to %s (%s)", status.value, status.description)
        else:
            self._log.info("Alarm status changed to %s (%s)", status.value, status.description)

    def on_cat_detected(self, detected: bool) -> None:
        self._log.info("Camera scan complete: %s", "cat detected" if detected else "no cat")

    def on_sensor_status_changed(self) -> None:
        self._log.debug("Sensor status changed.")


__all__ = ["LoggingStatusListener", "StatusListenerRegistry"]
