"""
Dynaconf-powered configuration loader with Pydantic validation.

The configuration service loads the layered YAML files from the config
directory (`config.yaml`, then `secrets.yaml`), lets `CATPOINT_*` environment
variables override them, and validates the merged result into a
`ConfigSnapshot` used to wire the repository and image classifier.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Literal

from dynaconf import Dynaconf
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from ..image.service import DEFAULT_CONFIDENCE_THRESHOLD


def _section(raw: dict[str, Any], key: str) -> dict[str, Any]:
    """Case-insensitive dictionary lookup helper."""
    value = raw.get(key) or raw.get(key.upper()) or raw.get(key.lower())
    if isinstance(value, dict):
        return value
    return {}


def _deep_merge(base: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    """Recursively merge dictionaries without mutating the originals."""
    result: dict[str, Any] = {**base}
    for key, value in updates.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _lower_keys(raw: dict[str, Any]) -> dict[str, Any]:
    """Dynaconf upper-cases top-level keys; normalise them for validation."""
    return {
        str(key).lower(): _lower_keys(value) if isinstance(value, dict) else value
        for key, value in raw.items()
    }


CONFIG_FILENAMES = ("config.yaml", "secrets.yaml")
_REPO_ROOT = Path(__file__).resolve().parents[3]
DEFAULT_CONFIG_DIR = _REPO_ROOT / "config"


class ConfigError(RuntimeError):
    """Raised when configuration files are missing or invalid."""


class StorageSettings(BaseModel):
    """Where the durable security state lives."""

    model_config = ConfigDict(extra="ignore")

    backend: Literal["memory", "json", "sql"] = Field(default="json")
    path: Path = Field(default=Path("data") / "catpoint.json")
    database_url: str = Field(default="sqlite:///data/catpoint.db")

    @field_validator("path", mode="before")
    @classmethod
    def _coerce_path(cls, value: Any) -> Path:
        return Path(value).expanduser()


class FakeImageSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    seed: int | None = Field(default=None)
    fixed_result: bool | None = Field(
        default=None, description="Always report this verdict instead of rolling dice."
    )


class RekognitionSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    region_name: str | None = Field(default=None)
    endpoint_url: str | None = Field(default=None)
    aws_access_key_id: str | None = Field(default=None)
    aws_secret_access_key: str | None = Field(default=None)
    aws_session_token: str | None = Field(default=None)
    label: str = Field(default="cat")


class YoloSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    model_path: str | None = Field(default=None)
    labels: list[str] = Field(default_factory=lambda: ["cat"])


class ImageSettings(BaseModel):
    """Cat classifier selection and tuning."""

    model_config = ConfigDict(extra="ignore")

    provider: Literal["fake", "rekognition", "yolo"] = Field(default="fake")
    confidence_threshold: float = Field(default=DEFAULT_CONFIDENCE_THRESHOLD, ge=0.0, le=100.0)
    fake: FakeImageSettings = Field(default_factory=FakeImageSettings)
    rekognition: RekognitionSettings = Field(default_factory=RekognitionSettings)
    yolo: YoloSettings = Field(default_factory=YoloSettings)


class LoggingSettings(BaseModel):
    model_config = ConfigDict(extra="ignore")

    level: str = Field(default="INFO")
    file: Path | None = Field(default=Path("data") / "catpoint.log")
    max_mb: int = Field(default=10, gt=0)
    backup_count: int = Field(default=3, ge=0)

    @field_validator("level")
    @classmethod
    def _upper_level(cls, value: str) -> str:
        return str(value).upper()


class ConfigSnapshot(BaseModel):
    """Validated view over every configuration section."""

    model_config = ConfigDict(extra="ignore")

    storage: StorageSettings = Field(default_factory=StorageSettings)
    image: ImageSettings = Field(default_factory=ImageSettings)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)


class ConfigService:
    """
    Runtime facade for loading and validating configuration.
    """

    def __init__(
        self,
        *,
        config_dir: str | Path | None = None,
        settings: Dynaconf | None = None,
    ) -> None:
        self._config_dir = Path(config_dir) if config_dir else DEFAULT_CONFIG_DIR
        settings_files = [self._config_dir / name for name in CONFIG_FILENAMES]
        existing_files = [str(path) for path in settings_files if path.exists()]
        if settings is None and not existing_files:
            raise ConfigError(
                f"No configuration files found in {self._config_dir}. "
                "Expected at least config.yaml."
            )

        self._settings = settings or Dynaconf(
            envvar_prefix="CATPOINT",
            settings_files=existing_files,
            load_dotenv=True,
            environments=False,
            merge_enabled=True,
        )
        self._snapshot = self._build_snapshot()

    @property
    def config_dir(self) -> Path:
        return self._config_dir

    @property
    def snapshot(self) -> ConfigSnapshot:
        """Latest validated configuration snapshot."""
        return self._snapshot

    def refresh(self) -> ConfigSnapshot:
        """Reload configuration files and rebuild the snapshot."""
        self._settings.reload()
        self._snapshot = self._build_snapshot()
        return self._snapshot

    def apply_changes(self, changes: dict[str, Any]) -> ConfigSnapshot:
        """
        Merge the provided changes into the current configuration snapshot.

        This does not persist the changes to disk.
        """
        raw = _lower_keys(self._settings.as_dict())
        merged = _deep_merge(raw, _lower_keys(changes))
        self._snapshot = self._build_snapshot(merged)
        return self._snapshot

    def _build_snapshot(self, raw: dict[str, Any] | None = None) -> ConfigSnapshot:
        source = raw if raw is not None else self._settings.as_dict()
        data = {
            "storage": _section(source, "storage"),
            "image": _section(source, "image"),
            "logging": _section(source, "logging"),
        }
        try:
            return ConfigSnapshot.model_validate(_lower_keys(data))
        except ValidationError as exc:
            raise ConfigError("Configuration validation failed") from exc


__all__ = [
    "ConfigError",
    "ConfigService",
    "ConfigSnapshot",
    "FakeImageSettings",
    "ImageSettings",
    "LoggingSettings",
    "RekognitionSettings",
    "StorageSettings",
    "YoloSettings",
]
