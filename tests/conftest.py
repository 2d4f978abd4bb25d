"""
Pytest configuration and fixtures
"""
import asyncio
import threading
import sys
from pathlib import Path
from typing import List, Optional

import cv2
import numpy as np
import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from civiclens.ml.detection import DetectionResult, DetectionService, ObjectDetector


class FakeDetector(ObjectDetector):
    """Detector returning canned results and counting calls."""

    def __init__(
        self,
        detections: Optional[List[DetectionResult]] = None,
        error: Optional[Exception] = None,
        load_error: Optional[Exception] = None,
        load_gate: Optional[threading.Event] = None
    ):
        self.detections = detections or []
        self.error = error
        self.load_error = load_error
        self.load_gate = load_gate
        self.load_calls = 0
        self.calls = 0

    def load(self) -> None:
        self.load_calls += 1
        if self.load_gate is not None:
            self.load_gate.wait(timeout=5)
        if self.load_error is not None:
            raise self.load_error

    def detect(self, image) -> List[DetectionResult]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        return list(self.detections)


def make_service(detector: ObjectDetector, load: bool = True) -> DetectionService:
    """Detection service, loaded unless told otherwise."""
    service = DetectionService(detector)
    if load:
        asyncio.run(service.load())
    return service


def encode_image(width: int = 320, height: int = 240, ext: str = ".png") -> bytes:
    """Encode a textured test image."""
    rng = np.random.default_rng(7)
    image = rng.integers(0, 255, size=(height, width, 3), dtype=np.uint8)
    ok, buffer = cv2.imencode(ext, image)
    assert ok
    return buffer.tobytes()


@pytest.fixture
def image_bytes():
    """PNG bytes of a decodable image."""
    return encode_image()


@pytest.fixture
def known_reports():
    """Existing reports around Hyderabad, in API wire format."""
    return [
        {
            "id": "1",
            "category": "Waste",
            "location": {"lat": 17.385, "lng": 78.4867},
            "address": "Charminar, Hyderabad",
            "status": "not_solved",
            "upvotes": 24,
        },
        {
            "id": "2",
            "category": "Water",
            "location": {"lat": 17.4399, "lng": 78.4983},
            "address": "Secunderabad Railway Station",
            "status": "in_progress",
            "upvotes": 18,
        },
        {
            "id": "3",
            "category": "Road",
            "location": {"lat": 17.4156, "lng": 78.4347},
            "address": "Banjara Hills, Road No. 12",
            "status": "solved",
            "upvotes": 42,
        },
    ]


@pytest.fixture
def bottle_detections():
    return [DetectionResult(label="bottle", score=0.7, bounding_box=(10, 10, 40, 80))]


@pytest.fixture
def person_detections():
    return [DetectionResult(label="person", score=0.91, bounding_box=(0, 0, 100, 200))]
