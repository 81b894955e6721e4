"""
Key-value backends used by the preference-style security repository.

Every backend stores plain strings under string keys. Backend-specific I/O
errors are wrapped in `StorageError` so the repository can degrade to its
defaults without knowing which medium is in use.
"""

from __future__ import annotations

import abc
import json
import logging
import os
import tempfile
import threading
from collections.abc import Callable
from pathlib import Path
from typing import Any

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Field, Session, SQLModel
from sqlmodel import create_engine as sqlmodel_create_engine

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Raised when a backend cannot read or write its medium."""


class KeyValueStore(abc.ABC):
    """Minimal string preference store."""

    @abc.abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value or None when the key is missing."""

    @abc.abstractmethod
    def put(self, key: str, value: str) -> None:
        """Store `value` under `key`, replacing any previous value."""


class MemoryStore(KeyValueStore):
    """Process-local store, mainly for tests and throwaway sessions."""

    def __init__(self, initial: dict[str, str] | None = None) -> None:
        self._data: dict[str, str] = dict(initial or {})
        self._lock = threading.Lock()

    def get(self, key: str) -> str | None:
        with self._lock:
            return self._data.get(key)

    def put(self, key: str, value: str) -> None:
        with self._lock:
            self._data[key] = value

    def as_dict(self) -> dict[str, str]:
        with self._lock:
            return dict(self._data)


class JsonFileStore(KeyValueStore):
    """
    Store every key in a single JSON document on disk.

    Writes go to a temporary file in the same directory which then replaces
    the original, so a crash mid-write leaves the previous document intact.
    A document that cannot be parsed is discarded by the next write.
    """

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path)
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def get(self, key: str) -> str | None:
        with self._lock:
            value = self._read_document().get(key)
        if value is None:
            return None
        return value if isinstance(value, str) else json.dumps(value)

    def put(self, key: str, value: str) -> None:
        with self._lock:
            try:
                document = self._read_document()
            except StorageError as exc:
                logger.warning("%s; rewriting it from scratch.", exc)
                document = {}
            document[key] = value
            self._write_document(document)

    def _read_document(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8") or "{}")
        except (OSError, ValueError) as exc:
            raise StorageError(f"Unable to read preferences from {self._path}") from exc
        if not isinstance(data, dict):
            raise StorageError(f"Preference file {self._path} does not contain a JSON object.")
        return data

    def _write_document(self, document: dict[str, Any]) -> None:
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                prefix=f".{self._path.name}.", suffix=".tmp", dir=self._path.parent
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    json.dump(document, handle, indent=2, sort_keys=True)
                os.replace(tmp_name, self._path)
            except BaseException:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            raise StorageError(f"Unable to write preferences to {self._path}") from exc


class Preference(SQLModel, table=True):
    """One persisted preference row."""

    key: str = Field(primary_key=True)
    value: str


class SqlStore(KeyValueStore):
    """Preference table kept in any SQLAlchemy-supported database."""

    def __init__(
        self,
        database_url: str = "sqlite:///data/catpoint.db",
        *,
        engine_factory: Callable[[str], Any] | None = None,
    ) -> None:
        self._database_url = database_url
        self._engine_factory = engine_factory or self._default_engine_factory
        self._engine: Any | None = None
        self._lock = threading.Lock()

    @property
    def database_url(self) -> str:
        return self._database_url

    def get(self, key: str) -> str | None:
        try:
            with Session(self._ensure_engine()) as session:
                record = session.get(Preference, key)
                return record.value if record is not None else None
        except (SQLAlchemyError, OSError) as exc:
            raise StorageError(f"Unable to read preference {key!r}") from exc

    def put(self, key: str, value: str) -> None:
        try:
            with Session(self._ensure_engine()) as session:
                record = session.get(Preference, key)
                if record is None:
                    record = Preference(key=key, value=value)
                else:
                    record.value = value
                session.add(record)
                session.commit()
        except (SQLAlchemyError, OSError) as exc:
            raise StorageError(f"Unable to write preference {key!r}") from exc

    def _ensure_engine(self) -> Any:
        with self._lock:
            if self._engine is None:
                engine = self._engine_factory(self._database_url)
                SQLModel.metadata.create_all(engine)
                self._engine = engine
                logger.debug("Preference table ready at %s", self._database_url)
            return self._engine

    def _default_engine_factory(self, database_url: str) -> Any:
        if database_url.startswith("sqlite:///"):
            Path(database_url.removeprefix("sqlite:///")).parent.mkdir(
                parents=True, exist_ok=True
            )
        connect_args = {"check_same_thread": False} if database_url.startswith("sqlite") else {}
        return sqlmodel_create_engine(database_url, echo=False, connect_args=connect_args)


__all__ = [
    "JsonFileStore",
    "KeyValueStore",
    "MemoryStore",
    "Preference",
    "SqlStore",
    "StorageError",
]
