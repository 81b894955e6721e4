"""
Image classification contract consumed by the security service.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

DEFAULT_CONFIDENCE_THRESHOLD = 50.0


class ImageClassificationError(RuntimeError):
    """Raised when an image could not be analysed."""


@runtime_checkable
class ImageService(Protocol):
    """Anything able to tell whether an encoded image shows a cat."""

    def image_contains_cat(self, image: bytes, confidence_threshold: float) -> bool:
        """
        Return True when a cat is found with at least `confidence_threshold`
        percent confidence (0-100). Implementations may raise on failure.
        """
        ...


__all__ = ["DEFAULT_CONFIDENCE_THRESHOLD", "ImageClassificationError", "ImageService"]
