"""
Command-line control panel for the Catpoint security system.

Each invocation loads the persisted state, applies one command and exits. The
`shell` command keeps a single service alive while reading commands from
stdin, so a cat seen by `scan` still counts when the system is later armed at
home.
"""

from __future__ import annotations

import argparse
import logging
import logging.handlers
import shlex
import sys
import uuid
from collections.abc import Sequence
from pathlib import Path
from typing import TextIO

from .app import build_security_service
from .core.config import ConfigError, ConfigService, LoggingSettings
from .core.contracts import ArmingStatus, Sensor, SensorType
from .core.listeners import LoggingStatusListener
from .core.security_service import SecurityService

LOGGER = logging.getLogger(__name__)
LOG_FORMAT = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"

ARMING_CHOICES = {
    "home": ArmingStatus.ARMED_HOME,
    "away": ArmingStatus.ARMED_AWAY,
}


class SensorLookupError(LookupError):
    """Raised when a sensor reference matches nothing or more than one sensor."""


def _ensure_rotating_file_handler(
    log_file: Path,
    *,
    max_mb: int = 10,
    backup_count: int = 3,
) -> None:
    """Attach a rotating file handler pointed at ``log_file`` if missing."""

    try:
        log_file.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        LOGGER.warning("Unable to create log directory %s: %s", log_file.parent, exc)
        return

    root_logger = logging.getLogger()
    for handler in root_logger.handlers:
        if isinstance(handler, logging.handlers.RotatingFileHandler):
            existing = getattr(handler, "baseFilename", None)
            if existing and Path(existing) == log_file.resolve():
                return

    handler = logging.handlers.RotatingFileHandler(
        log_file,
        maxBytes=max_mb * 1024 * 1024,
        backupCount=backup_count,
        encoding="utf-8",
    )
    handler.setFormatter(logging.Formatter(LOG_FORMAT))
    root_logger.addHandler(handler)


def configure_logging(level: str, settings: LoggingSettings | None = None) -> None:
    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(level=numeric_level, format=LOG_FORMAT)
    logging.getLogger().setLevel(numeric_level)
    if settings is not None and settings.file is not None:
        _ensure_rotating_file_handler(
            settings.file, max_mb=settings.max_mb, backup_count=settings.backup_count
        )


def find_sensor(service: SecurityService, reference: str) -> Sensor:
    """Resolve a sensor by full id, id prefix or case-insensitive name."""
    sensors = service.sensors
    try:
        wanted = uuid.UUID(reference)
    except ValueError:
        wanted = None
    if wanted is not None:
        for sensor in sensors:
            if sensor.sensor_id == wanted:
                return sensor

    by_name = [sensor for sensor in sensors if sensor.name.lower() == reference.lower()]
    matches = by_name or [
        sensor for sensor in sensors if str(sensor.sensor_id).startswith(reference.lower())
    ]
    if not matches:
        raise SensorLookupError(f"No sensor matches {reference!r}.")
    if len(matches) > 1:
        raise SensorLookupError(
            f"{reference!r} is ambiguous; use one of: "
            + ", ".join(str(sensor.sensor_id) for sensor in matches)
        )
    return matches[0]


def format_status(service: SecurityService) -> str:
    arming = service.arming_status
    alarm = service.alarm_status
    lines = [
        f"Arming: {arming.value} ({arming.description})",
        f"Alarm:  {alarm.value} ({alarm.description})",
        f"Cat detected this session: {'yes' if service.cat_detected else 'no'}",
        format_sensors(service),
    ]
    return "\n".join(lines)


def format_sensors(service: SecurityService) -> str:
    sensors = service.sensors
    if not sensors:
        return "Sensors: none"
    rows = ["Sensors:"]
    for sensor in sensors:
        state = "active" if sensor.active else "inactive"
        rows.append(
            f"  {sensor.name:<20} {sensor.sensor_type.value:<7} {state:<8} {sensor.sensor_id}"
        )
    return "\n".join(rows)


def run_command(service: SecurityService, args: argparse.Namespace, out: TextIO) -> int:
    """Apply one parsed command to ``service`` and print the outcome."""

    command = args.command
    try:
        match command:
            case "status" | None:
                print(format_status(service), file=out)
            case "sensors":
                print(format_sensors(service), file=out)
            case "arm":
                service.set_arming_status(ARMING_CHOICES[args.mode])
                print(format_status(service), file=out)
            case "disarm":
                service.set_arming_status(ArmingStatus.DISARMED)
                print(format_status(service), file=out)
            case "add-sensor":
                sensor = Sensor(name=args.name, sensor_type=SensorType(args.sensor_type.upper()))
                service.add_sensor(sensor)
                print(f"Added {sensor.name} ({sensor.sensor_id})", file=out)
            case "remove-sensor":
                sensor = find_sensor(service, args.sensor)
                service.remove_sensor(sensor)
                print(f"Removed {sensor.name} ({sensor.sensor_id})", file=out)
            case "activate" | "deactivate":
                sensor = find_sensor(service, args.sensor)
                service.change_sensor_activation_status(sensor, command == "activate")
                print(format_status(service), file=out)
            case "scan":
                image_path = Path(args.image)
                try:
                    image = image_path.read_bytes()
                except OSError as exc:
                    print(f"Cannot read image {image_path}: {exc}", file=out)
                    return 2
                service.process_image(image)
                print(format_status(service), file=out)
            case _:
                print(f"Unknown command {command!r}", file=out)
                return 2
    except SensorLookupError as exc:
        print(str(exc), file=out)
        return 2
    return 0


def run_shell(
    service: SecurityService,
    parser: argparse.ArgumentParser,
    lines: TextIO,
    out: TextIO,
) -> int:
    """Execute commands line by line against one long-lived service."""

    exit_code = 0
    for raw_line in lines:
        line = raw_line.strip()
        if not line or line.startswith("#"):
            continue
        if line in {"exit", "quit"}:
            break
        try:
            args = parser.parse_args(shlex.split(line))
        except SystemExit:
            exit_code = 2
            continue
        if args.command == "shell":
            print("Already in a shell session.", file=out)
            continue
        exit_code = run_command(service, args, out)
    return exit_code


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="catpoint", description="Catpoint security control panel."
    )
    parser.add_argument(
        "--config-dir",
        type=Path,
        default=None,
        help="Directory that contains config.yaml/secrets.yaml (default: repo config/).",
    )
    parser.add_argument(
        "--log-level",
        default=None,
        help="Python logging level (default: logging.level from config).",
    )
    commands = parser.add_subparsers(dest="command")
    commands.add_parser("status", help="Show arming, alarm and sensor state.")
    commands.add_parser("sensors", help="List sensors.")
    arm = commands.add_parser("arm", help="Arm the system.")
    arm.add_argument("mode", choices=sorted(ARMING_CHOICES))
    commands.add_parser("disarm", help="Disarm the system and clear the alarm.")
    add = commands.add_parser("add-sensor", help="Register a new sensor.")
    add.add_argument("name")
    add.add_argument(
        "sensor_type",
        type=str.upper,
        choices=[sensor_type.value for sensor_type in SensorType],
    )
    for name, help_text in (
        ("remove-sensor", "Remove a sensor by name or id."),
        ("activate", "Mark a sensor as triggered."),
        ("deactivate", "Mark a sensor as quiet."),
    ):
        sub = commands.add_parser(name, help=help_text)
        sub.add_argument("sensor", help="Sensor name, id or id prefix.")
    scan = commands.add_parser("scan", help="Run cat detection on an image file.")
    scan.add_argument("image", type=Path)
    commands.add_parser("shell", help="Read commands from stdin in one session.")
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        config_service = ConfigService(config_dir=args.config_dir)
    except ConfigError as exc:
        configure_logging(args.log_level or "INFO")
        LOGGER.error("Configuration failed: %s", exc)
        return 2
    snapshot = config_service.snapshot
    configure_logging(args.log_level or snapshot.logging.level, snapshot.logging)

    try:
        service = build_security_service(snapshot, listeners=[LoggingStatusListener()])
        if args.command == "shell":
            return run_shell(service, parser, sys.stdin, sys.stdout)
        return run_command(service, args, sys.stdout)
    except KeyboardInterrupt:
        LOGGER.info("Interrupted by user.")
        return 0
    except Exception:  # pragma: no cover - surfaced to operator
        LOGGER.exception("Catpoint command crashed.")
        return 1


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())


__all__ = ["build_parser", "find_sensor", "main", "run_command", "run_shell"]
