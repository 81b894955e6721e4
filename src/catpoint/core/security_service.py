"""
Security service: the alarm state machine.

Receives arming changes, sensor activations and camera images, decides how the
alarm level moves, persists the result through the repository and fans the
changes out to registered status listeners.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from ..image.service import DEFAULT_CONFIDENCE_THRESHOLD
from .contracts import AlarmStatus, ArmingStatus, Sensor, StatusListener
from .listeners import StatusListenerRegistry

if TYPE_CHECKING:
    from ..data.repository import SecurityRepository
    from ..image.service import ImageService

logger = logging.getLogger(__name__)


class SecurityService:
    """
    Apply the alarm rules on top of a security repository.

    All operations are synchronous and expect a single logical caller at a
    time; thread safety of the stored state is the repository's concern. The
    cat-detected flag lives only in this instance and is never persisted.
    """

    def __init__(
        self,
        repository: SecurityRepository,
        image_service: ImageService,
        *,
        confidence_threshold: float = DEFAULT_CONFIDENCE_THRESHOLD,
        listeners: StatusListenerRegistry | None = None,
    ) -> None:
        self._repository = repository
        self._image_service = image_service
        self._confidence_threshold = confidence_threshold
        self._listeners = listeners if listeners is not None else StatusListenerRegistry()
        self._cat_detected = False

    @property
    def alarm_status(self) -> AlarmStatus:
        return self._repository.alarm_status

    @property
    def arming_status(self) -> ArmingStatus:
        return self._repository.arming_status

    @property
    def sensors(self) -> list[Sensor]:
        return self._repository.sensors

    @property
    def cat_detected(self) -> bool:
        return self._cat_detected

    @property
    def confidence_threshold(self) -> float:
        return self._confidence_threshold

    def add_status_listener(self, listener: StatusListener) -> None:
        self._listeners.add(listener)

    def remove_status_listener(self, listener: StatusListener) -> None:
        self._listeners.remove(listener)

    def set_arming_status(self, status: ArmingStatus) -> None:
        """
        Persist the new arming mode and apply its side effects.

        Disarming clears the alarm. Arming deactivates every sensor and, when
        arming at home while a cat was last seen, raises the alarm at once.
        """
        self._repository.set_arming_status(status)

        match status:
            case ArmingStatus.DISARMED:
                self.set_alarm_status(AlarmStatus.NO_ALARM)
            case ArmingStatus.ARMED_HOME | ArmingStatus.ARMED_AWAY:
                self._deactivate_all_sensors()
                if status is ArmingStatus.ARMED_HOME and self._cat_detected:
                    logger.info("Cat seen earlier; armed at home triggers the alarm.")
                    self.set_alarm_status(AlarmStatus.ALARM)

        self._listeners.notify_arming_status(status)
        self._listeners.notify_sensor_status_changed()

    def change_sensor_activation_status(self, sensor: Sensor | None, active: bool) -> None:
        """Toggle a sensor and escalate or relax the alarm accordingly."""
        if sensor is None:
            logger.debug("Ignoring activation change for a missing sensor.")
            return
        current = self._repository.get_sensor(sensor.sensor_id) or sensor
        if current.active == active:
            sensor.active = active
            return

        sensor.active = active
        current.active = active
        self._repository.update_sensor(current)

        if self.arming_status is ArmingStatus.DISARMED:
            self._listeners.notify_sensor_status_changed()
            return
        if self.alarm_status is AlarmStatus.ALARM:
            self._listeners.notify_sensor_status_changed()
            return

        if active:
            self._handle_sensor_activated()
        else:
            self._handle_sensor_deactivated()
        self._listeners.notify_sensor_status_changed()

    def process_image(self, image: bytes | None) -> None:
        """Classify a camera image and apply the cat-detection rules."""
        if image is None:
            return
        detected = self._classify(image)
        self._cat_detected = detected

        if detected and self.arming_status is ArmingStatus.ARMED_HOME:
            self.set_alarm_status(AlarmStatus.ALARM)
        elif not detected and self._all_sensors_inactive():
            self.set_alarm_status(AlarmStatus.NO_ALARM)

        self._listeners.notify_cat_detected(detected)

    def set_alarm_status(self, status: AlarmStatus) -> None:
        """Persist an alarm level and notify listeners; no cascading rules."""
        previous = self._repository.alarm_status
        self._repository.set_alarm_status(status)
        if previous is not status:
            logger.info("Alarm status %s -> %s", previous.value, status.value)
        self._listeners.notify_alarm_status(status)

    def add_sensor(self, sensor: Sensor | None) -> None:
        if sensor is None:
            logger.debug("Ignoring request to add a missing sensor.")
            return
        if sensor in self._repository.sensors:
            logger.debug("Sensor %s already registered; skipping.", sensor.sensor_id)
            return
        self._repository.add_sensor(sensor)

    def remove_sensor(self, sensor: Sensor | None) -> None:
        if sensor is None:
            logger.debug("Ignoring request to remove a missing sensor.")
            return
        self._repository.remove_sensor(sensor)

    def _deactivate_all_sensors(self) -> None:
        for sensor in self._repository.sensors:
            if sensor.active:
                sensor.active = False
                self._repository.update_sensor(sensor)

    def _handle_sensor_activated(self) -> None:
        match self.alarm_status:
            case AlarmStatus.NO_ALARM:
                self.set_alarm_status(AlarmStatus.PENDING_ALARM)
            case AlarmStatus.PENDING_ALARM:
                self.set_alarm_status(AlarmStatus.ALARM)
            case AlarmStatus.ALARM:
                pass

    def _handle_sensor_deactivated(self) -> None:
        if self.alarm_status is AlarmStatus.PENDING_ALARM and self._all_sensors_inactive():
            self.set_alarm_status(AlarmStatus.NO_ALARM)

    def _all_sensors_inactive(self) -> bool:
        return not any(sensor.active for sensor in self._repository.sensors)

    def _classify(self, image: bytes) -> bool:
        try:
            return bool(
                self._image_service.image_contains_cat(image, self._confidence_threshold)
            )
        except Exception:
            logger.warning("Image classification failed; treating as no cat.", exc_info=True)
            return False


__all__ = ["SecurityService"]
