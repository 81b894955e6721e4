from __future__ import annotations

import textwrap
import uuid
from pathlib import Path

import pytest

from catpoint.core.config import ConfigService
from catpoint.core.contracts import AlarmStatus, ArmingStatus, Sensor, SensorType
from catpoint.core.security_service import SecurityService
from catpoint.data.repository import KeyValueSecurityRepository
from catpoint.data.stores import MemoryStore


def _write_yaml(path: Path, content: str) -> None:
    path.write_text(textwrap.dedent(content).strip() + "\n", encoding="utf-8")


class StubImageService:
    """Classifier double returning a preset verdict or raising."""

    def __init__(self, result: bool = False, error: Exception | None = None) -> None:
        self.result = result
        self.error = error
        self.calls: list[tuple[bytes, float]] = []

    def image_contains_cat(self, image: bytes, confidence_threshold: float) -> bool:
        self.calls.append((image, confidence_threshold))
        if self.error is not None:
            raise self.error
        return self.result


class RecordingListener:
    """Collect notifications in the order they were delivered."""

    def __init__(self) -> None:
        self.events: list[tuple[object, ...]] = []

    def on_arming_status(self, status: ArmingStatus) -> None:
        self.events.append(("arming", status))

    def on_alarm_status(self, status: AlarmStatus) -> None:
        self.events.append(("alarm", status))

    def on_cat_detected(self, detected: bool) -> None:
        self.events.append(("cat", detected))

    def on_sensor_status_changed(self) -> None:
        self.events.append(("sensors",))

    def kinds(self) -> list[object]:
        return [event[0] for event in self.events]


class CountingRepository(KeyValueSecurityRepository):
    """Repository that records every sensor replacement it persists."""

    def __init__(self, store: MemoryStore) -> None:
        super().__init__(store)
        self.replaced: list[uuid.UUID] = []

    def replace_sensor(self, sensor_id: uuid.UUID, sensor: Sensor) -> bool:
        self.replaced.append(sensor_id)
        return super().replace_sensor(sensor_id, sensor)


@pytest.fixture
def memory_store() -> MemoryStore:
    return MemoryStore()


@pytest.fixture
def repository(memory_store: MemoryStore) -> CountingRepository:
    repo = CountingRepository(memory_store)
    repo.load()
    return repo


@pytest.fixture
def image_service() -> StubImageService:
    return StubImageService()


@pytest.fixture
def listener() -> RecordingListener:
    return RecordingListener()


@pytest.fixture
def service(
    repository: CountingRepository,
    image_service: StubImageService,
    listener: RecordingListener,
) -> SecurityService:
    security = SecurityService(repository, image_service)
    security.add_status_listener(listener)
    return security


@pytest.fixture
def door() -> Sensor:
    return Sensor(name="Front door", sensor_type=SensorType.DOOR)


@pytest.fixture
def window() -> Sensor:
    return Sensor(name="Kitchen window", sensor_type=SensorType.WINDOW)


@pytest.fixture
def sample_config_dir(tmp_path: Path) -> Path:
    """
    Provide a temporary configuration directory for tests.
    """

    config_dir = tmp_path / "config"
    config_dir.mkdir()
    data_dir = tmp_path / "data"
    config_yaml = f"""
    storage:
      backend: "json"
      path: "{(data_dir / 'catpoint.json').as_posix()}"
      database_url: "sqlite:///{(data_dir / 'catpoint.db').as_posix()}"

    image:
      provider: "fake"
      confidence_threshold: 65
      fake:
        seed: 7
        fixed_result: false
      rekognition:
        region_name: "eu-west-1"

    logging:
      level: "debug"
      file: "{(data_dir / 'catpoint.log').as_posix()}"
      max_mb: 1
      backup_count: 1
    """
    secrets_yaml = """
    image:
      rekognition:
        aws_access_key_id: "AKIATEST"
        aws_secret_access_key: "secret"
    """
    _write_yaml(config_dir / "config.yaml", config_yaml)
    _write_yaml(config_dir / "secrets.yaml", secrets_yaml)
    return config_dir


@pytest.fixture
def sample_config_service(sample_config_dir: Path) -> ConfigService:
    """Return a ConfigService wired to the temporary configuration."""

    return ConfigService(config_dir=sample_config_dir)
