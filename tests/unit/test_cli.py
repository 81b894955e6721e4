from __future__ import annotations

import io
import json
import logging
from pathlib import Path

import pytest

from catpoint import cli
from catpoint.app import build_image_service, build_security_service, build_store
from catpoint.core.config import ConfigService, ImageSettings, StorageSettings
from catpoint.core.contracts import AlarmStatus, ArmingStatus, Sensor, SensorType
from catpoint.data.stores import JsonFileStore, MemoryStore, SqlStore
from catpoint.image.fake import FakeImageService
from catpoint.image.rekognition import RekognitionImageService
from catpoint.image.yolo import YoloImageService


@pytest.fixture(autouse=True)
def _restore_root_logging():
    root = logging.getLogger()
    handlers = list(root.handlers)
    level = root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)


def _run(config_dir: Path, *argv: str) -> int:
    return cli.main(["--config-dir", str(config_dir), *argv])


def test_build_store_selects_backend(tmp_path: Path) -> None:
    assert isinstance(build_store(StorageSettings(backend="memory")), MemoryStore)
    assert isinstance(
        build_store(StorageSettings(backend="json", path=tmp_path / "state.json")), JsonFileStore
    )
    assert isinstance(
        build_store(StorageSettings(backend="sql", database_url="sqlite://")), SqlStore
    )


def test_build_image_service_selects_provider() -> None:
    fake = build_image_service(ImageSettings(fake={"fixed_result": True}))
    assert isinstance(fake, FakeImageService)
    assert fake.predictable is True

    rekognition = build_image_service(ImageSettings(provider="rekognition"))
    assert isinstance(rekognition, RekognitionImageService)

    yolo = build_image_service(ImageSettings(provider="yolo", yolo={"labels": ["cat", "kitten"]}))
    assert isinstance(yolo, YoloImageService)


def test_build_security_service_uses_configured_threshold(
    sample_config_service: ConfigService,
) -> None:
    snapshot = sample_config_service.apply_changes(
        {"storage": {"backend": "memory"}, "image": {"fake": {"fixed_result": True}}}
    )
    service = build_security_service(snapshot)

    service.process_image(b"frame")

    assert service.cat_detected is True
    assert service.confidence_threshold == 65


def test_cli_commands_persist_between_invocations(
    sample_config_dir: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    assert _run(sample_config_dir, "add-sensor", "Front door", "door") == 0
    assert _run(sample_config_dir, "add-sensor", "Hall", "motion") == 0
    assert _run(sample_config_dir, "arm", "away") == 0
    assert _run(sample_config_dir, "activate", "front door") == 0
    capsys.readouterr()

    assert _run(sample_config_dir, "status") == 0

    output = capsys.readouterr().out
    assert "Arming: ARMED_AWAY" in output
    assert "Alarm:  PENDING_ALARM" in output
    state = json.loads((sample_config_dir.parent / "data" / "catpoint.json").read_text())
    assert state["ALARM_STATUS"] == "PENDING_ALARM"
    assert len(json.loads(state["SENSORS"])) == 2


def test_cli_disarm_clears_alarm(
    sample_config_dir: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    _run(sample_config_dir, "add-sensor", "Door", "DOOR")
    _run(sample_config_dir, "add-sensor", "Window", "WINDOW")
    _run(sample_config_dir, "arm", "home")
    _run(sample_config_dir, "activate", "Door")
    _run(sample_config_dir, "activate", "Window")
    capsys.readouterr()

    assert _run(sample_config_dir, "disarm") == 0

    output = capsys.readouterr().out
    assert "Alarm:  NO_ALARM" in output
    assert "Arming: DISARMED" in output


def test_cli_unknown_sensor_exits_with_usage_error(
    sample_config_dir: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    assert _run(sample_config_dir, "activate", "garage") == 2
    assert "No sensor matches 'garage'" in capsys.readouterr().out


def test_cli_missing_image_exits_with_usage_error(
    sample_config_dir: Path, capsys: pytest.CaptureFixture[str]
) -> None:
    assert _run(sample_config_dir, "scan", str(sample_config_dir / "nope.png")) == 2
    assert "Cannot read image" in capsys.readouterr().out


def test_cli_missing_config_exits_with_usage_error(tmp_path: Path) -> None:
    assert _run(tmp_path / "absent", "status") == 2


def test_cli_remove_sensor(sample_config_dir: Path, capsys: pytest.CaptureFixture[str]) -> None:
    _run(sample_config_dir, "add-sensor", "Door", "door")
    capsys.readouterr()

    assert _run(sample_config_dir, "remove-sensor", "door") == 0
    assert _run(sample_config_dir, "sensors") == 0

    assert capsys.readouterr().out.strip().endswith("Sensors: none")


def test_shell_session_keeps_cat_flag(sample_config_service: ConfigService) -> None:
    snapshot = sample_config_service.apply_changes(
        {"storage": {"backend": "memory"}, "image": {"fake": {"fixed_result": True}}}
    )
    service = build_security_service(snapshot)
    image = snapshot.storage.path.parent / "cat.png"
    image.parent.mkdir(parents=True, exist_ok=True)
    image.write_bytes(b"\x89PNG")
    script = io.StringIO(
        "\n".join(
            [
                "# a cat walks by while disarmed",
                f"scan {image}",
                "",
                "shell",
                "arm home",
                "exit",
                "disarm",
            ]
        )
    )
    out = io.StringIO()

    exit_code = cli.run_shell(service, cli.build_parser(), script, out)

    assert exit_code == 0
    assert "Already in a shell session." in out.getvalue()
    assert service.alarm_status is AlarmStatus.ALARM
    assert service.arming_status is ArmingStatus.ARMED_HOME


def test_shell_reports_parse_errors(
    service, capsys: pytest.CaptureFixture[str]
) -> None:
    out = io.StringIO()

    exit_code = cli.run_shell(service, cli.build_parser(), io.StringIO("arm sideways\n"), out)

    assert exit_code == 2
    assert "invalid choice" in capsys.readouterr().err


def test_find_sensor_by_name_prefix_and_ambiguity(service) -> None:
    first = Sensor(name="Door", sensor_type=SensorType.DOOR)
    second = Sensor(name="door", sensor_type=SensorType.WINDOW)
    service.add_sensor(first)
    service.add_sensor(second)

    assert cli.find_sensor(service, str(first.sensor_id)) == first
    assert cli.find_sensor(service, str(second.sensor_id)[:12]) == second
    with pytest.raises(cli.SensorLookupError, match="ambiguous"):
        cli.find_sensor(service, "DOOR")
    with pytest.raises(cli.SensorLookupError):
        cli.find_sensor(service, "garage")
