"""Image classification backends used for cat detection."""

from .fake import FakeImageService
from .rekognition import RekognitionImageService
from .service import DEFAULT_CONFIDENCE_THRESHOLD, ImageClassificationError, ImageService
from .yolo import YoloImageService

__all__ = [
    "DEFAULT_CONFIDENCE_THRESHOLD",
    "FakeImageService",
    "ImageClassificationError",
    "ImageService",
    "RekognitionImageService",
    "YoloImageService",
]
