"""
Wiring helpers that turn a configuration snapshot into a running security service.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable

from .core.config import ConfigSnapshot, ImageSettings, StorageSettings
from .core.contracts import StatusListener
from .core.security_service import SecurityService
from .data.repository import KeyValueSecurityRepository
from .data.stores import JsonFileStore, KeyValueStore, MemoryStore, SqlStore
from .image.fake import FakeImageService
from .image.rekognition import RekognitionImageService
from .image.service import ImageService
from .image.yolo import YoloImageService

LOGGER = logging.getLogger(__name__)


def build_store(settings: StorageSettings) -> KeyValueStore:
    """Instantiate the key-value backend selected by `storage.backend`."""
    match settings.backend:
        case "memory":
            return MemoryStore()
        case "json":
            return JsonFileStore(settings.path)
        case "sql":
            return SqlStore(settings.database_url)
    raise ValueError(f"Unknown storage backend {settings.backend!r}")


def build_repository(settings: StorageSettings) -> KeyValueSecurityRepository:
    repository = KeyValueSecurityRepository(build_store(settings))
    repository.load()
    return repository


def build_image_service(settings: ImageSettings) -> ImageService:
    """Instantiate the cat classifier selected by `image.provider`."""
    match settings.provider:
        case "fake":
            service = FakeImageService(seed=settings.fake.seed)
            if settings.fake.fixed_result is not None:
                service.with_fixed_result(settings.fake.fixed_result)
            return service
        case "rekognition":
            options = settings.rekognition
            return RekognitionImageService(
                region_name=options.region_name,
                endpoint_url=options.endpoint_url,
                aws_access_key_id=options.aws_access_key_id,
                aws_secret_access_key=options.aws_secret_access_key,
                aws_session_token=options.aws_session_token,
                label=options.label,
            )
        case "yolo":
            return YoloImageService(
                model_path=settings.yolo.model_path,
                labels=settings.yolo.labels,
            )
    raise ValueError(f"Unknown image provider {settings.provider!r}")


def build_security_service(
    snapshot: ConfigSnapshot,
    *,
    listeners: Iterable[StatusListener] = (),
) -> SecurityService:
    """Load persisted state and return a service ready for commands."""
    repository = build_repository(snapshot.storage)
    image_service = build_image_service(snapshot.image)
    service = SecurityService(
        repository,
        image_service,
        confidence_threshold=snapshot.image.confidence_threshold,
    )
    for listener in listeners:
        service.add_status_listener(listener)
    LOGGER.info(
        "Security service ready (storage=%s, classifier=%s, threshold=%.1f)",
        snapshot.storage.backend,
        snapshot.image.provider,
        snapshot.image.confidence_threshold,
    )
    return service


__all__ = [
    "build_image_service",
    "build_repository",
    "build_security_service",
    "build_store",
]
