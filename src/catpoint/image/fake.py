"""
Simulated classifier for development and demos without a vision backend.
"""

from __future__ import annotations

import logging
import random

from .service import DEFAULT_CONFIDENCE_THRESHOLD

logger = logging.getLogger(__name__)


class FakeImageService:
    """Return a random verdict, or a fixed one once `with_fixed_result` is used."""

    def __init__(self, seed: int | None = None) -> None:
        self._random = random.Random(seed)
        self._fixed_result: bool | None = None
        self.last_confidence_used = DEFAULT_CONFIDENCE_THRESHOLD

    @property
    def predictable(self) -> bool:
        return self._fixed_result is not None

    def image_contains_cat(self, image: bytes, confidence_threshold: float) -> bool:
        self.last_confidence_used = confidence_threshold
        if self._fixed_result is not None:
            return self._fixed_result
        result = self._random.random() < 0.5
        logger.debug("Fake classifier rolled %s for %d bytes", result, len(image or b""))
        return result

    def with_fixed_result(self, contains_cat: bool) -> FakeImageService:
        self._fixed_result = bool(contains_cat)
        return self

    def enable_random_mode(self) -> FakeImageService:
        self._fixed_result = None
        return self


__all__ = ["FakeImageService"]
