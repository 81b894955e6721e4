"""
AWS Rekognition-backed cat classifier.

The boto3 client is created lazily through an injectable factory so tests can
supply a stub exposing `detect_labels`.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from boto3.session import Session
from botocore.exceptions import BotoCoreError, ClientError

from .service import ImageClassificationError

logger = logging.getLogger(__name__)


class RekognitionImageService:
    """Ask Rekognition `DetectLabels` whether a "Cat" label is present."""

    def __init__(
        self,
        *,
        region_name: str | None = None,
        endpoint_url: str | None = None,
        aws_access_key_id: str | None = None,
        aws_secret_access_key: str | None = None,
        aws_session_token: str | None = None,
        label: str = "cat",
        client_factory: Callable[[], Any] | None = None,
    ) -> None:
        self._region = region_name
        self._endpoint_url = endpoint_url
        self._aws_access_key_id = aws_access_key_id
        self._aws_secret_access_key = aws_secret_access_key
        self._aws_session_token = aws_session_token
        self._label = label.lower()
        self._client_factory = client_factory or self._default_client_factory
        self._client: Any | None = None

    def image_contains_cat(self, image: bytes, confidence_threshold: float) -> bool:
        if not image:
            raise ImageClassificationError("Empty image supplied to Rekognition.")
        client = self._ensure_client()
        try:
            response = client.detect_labels(
                Image={"Bytes": image},
                MinConfidence=float(confidence_threshold),
            )
        except (BotoCoreError, ClientError) as exc:
            raise ImageClassificationError("Rekognition label detection failed") from exc
        labels = response.get("Labels", [])
        found = any(str(label.get("Name", "")).lower() == self._label for label in labels)
        logger.debug(
            "Rekognition returned %d labels (min confidence %.1f); %s=%s",
            len(labels),
            confidence_threshold,
            self._label,
            found,
        )
        return found

    def _ensure_client(self) -> Any:
        if self._client is None:
            try:
                self._client = self._client_factory()
            except (BotoCoreError, ClientError) as exc:
                raise ImageClassificationError("Unable to create Rekognition client") from exc
            logger.info("Rekognition client initialised for region %s", self._region or "default")
        return self._client

    def _default_client_factory(self) -> Any:
        session = Session(
            aws_access_key_id=self._aws_access_key_id,
            aws_secret_access_key=self._aws_secret_access_key,
            aws_session_token=self._aws_session_token,
            region_name=self._region,
        )
        return session.client(
            "rekognition", endpoint_url=self._endpoint_url, region_name=self._region
        )


__all__ = ["RekognitionImageService"]
