"""
Local cat classifier backed by a YOLO object detector.

Ultralytics is an optional extra; the predictor is created lazily so the rest
of the package imports without it and unit tests can inject a stub.
"""

from __future__ import annotations

import io
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass

import imageio.v3 as iio
import numpy as np

from .service import ImageClassificationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetectionCandidate:
    """Single detection produced by a predictor."""

    label: str
    confidence: float


class PredictorProtocol:
    """Small protocol so we can swap predictor implementations."""

    def predict(self, image: np.ndarray) -> list[DetectionCandidate]:  # pragma: no cover - protocol
        raise NotImplementedError


class UltralyticsPredictor(PredictorProtocol):
    """Adapter that wraps an Ultralytics YOLO model."""

    def __init__(self, model_path: str | None = None) -> None:
        try:
            from ultralytics import YOLO
        except ModuleNotFoundError as exc:  # pragma: no cover - import guard
            raise RuntimeError(
                "Ultralytics is not installed; install the 'yolo' extra to use this classifier."
            ) from exc
        self._model = YOLO(model_path or "yolov8n.pt")

    def predict(self, image: np.ndarray) -> list[DetectionCandidate]:  # pragma: no cover - heavy
        candidates: list[DetectionCandidate] = []
        for result in self._model(image, verbose=False):
            boxes = getattr(result, "boxes", None)
            names = getattr(result, "names", {})
            if boxes is None:
                continue
            for cls_id, conf in zip(boxes.cls, boxes.conf, strict=False):
                label = names.get(int(cls_id), str(int(cls_id)))
                candidates.append(DetectionCandidate(label=str(label), confidence=float(conf)))
        return candidates


class YoloImageService:
    """Report a cat when any configured label clears the confidence threshold."""

    def __init__(
        self,
        *,
        model_path: str | None = None,
        labels: Sequence[str] = ("cat",),
        predictor_factory: Callable[[str | None], PredictorProtocol] | None = None,
    ) -> None:
        self._model_path = model_path
        self._labels = {str(label).lower() for label in labels}
        self._predictor_factory = predictor_factory or UltralyticsPredictor
        self._predictor: PredictorProtocol | None = None

    def image_contains_cat(self, image: bytes, confidence_threshold: float) -> bool:
        if not image:
            raise ImageClassificationError("Empty image supplied to YOLO classifier.")
        if self._predictor is None:
            self._predictor = self._predictor_factory(self._model_path)
            logger.info("YOLO predictor loaded (%s)", self._model_path or "default weights")
        array = self._decode_image(image)
        minimum = float(confidence_threshold) / 100.0
        for candidate in self._predictor.predict(array):
            if candidate.label.lower() in self._labels and candidate.confidence >= minimum:
                logger.debug("YOLO matched %s at %.2f", candidate.label, candidate.confidence)
                return True
        return False

    def _decode_image(self, image: bytes) -> np.ndarray:
        try:
            with io.BytesIO(image) as buffer:
                return np.asarray(iio.imread(buffer))
        except (OSError, ValueError) as exc:
            raise ImageClassificationError("Unable to decode image bytes") from exc


__all__ = [
    "DetectionCandidate",
    "PredictorProtocol",
    "UltralyticsPredictor",
    "YoloImageService",
]
