"""
CivicLens - Machine Learning Module
Object detection lifecycle and image helpers.
"""

from civiclens.ml.detection import (
    DetectionResult,
    DetectionService,
    ModelState,
    ObjectDetector,
    YoloDetector,
)

__all__ = [
    "DetectionResult",
    "DetectionService",
    "ModelState",
    "ObjectDetector",
    "YoloDetector",
]
