"""
Object detection service
Wraps a pretrained visual detector behind an explicit load lifecycle.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from civiclens.core.config import settings
from civiclens.core.errors import (
    InferenceError,
    ModelNotReadyError,
    ModelUnavailableError,
)

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DetectionResult:
    """One labeled, scored, localized object found in an image."""
    label: str
    score: float
    bounding_box: Tuple[float, float, float, float] = (0.0, 0.0, 0.0, 0.0)  # x, y, width, height

    def __post_init__(self):
        if not 0.0 <= self.score <= 1.0:
            raise ValueError(f"Detection score out of range: {self.score}")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "label": self.label,
            "score": round(self.score, 4),
            "bounding_box": list(self.bounding_box),
        }


class ModelState(Enum):
    """Lifecycle of the detection model."""
    UNLOADED = "unloaded"
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


class ObjectDetector:
    """Blocking detector backend."""

    def load(self) -> None:
        raise NotImplementedError

    def detect(self, image: Any) -> List[DetectionResult]:
        raise NotImplementedError


class YoloDetector(ObjectDetector):
    """
    Ultralytics YOLO detector trained on COCO.

    Class names match the labels used by the forbidden gate and the
    category keyword table.
    """

    def __init__(
        self,
        model_path: Optional[str] = None,
        confidence_threshold: float = 0.25,
        use_gpu: bool = False
    ):
        self.model_path = model_path or settings.detection_model_path
        self.confidence_threshold = confidence_threshold
        self.use_gpu = use_gpu
        self._model = None

    def load(self) -> None:
        from ultralytics import YOLO

        self._model = YOLO(self.model_path)
        logger.info(f"Loaded detection model: {self.model_path}")

    def detect(self, image: Any) -> List[DetectionResult]:
        if self._model is None:
            raise RuntimeError("Model not loaded")

        results = self._model.predict(
            image,
            conf=self.confidence_threshold,
            device=0 if self.use_gpu else "cpu",
            verbose=False,
        )

        detections = []
        for result in results:
            names = result.names
            for box in result.boxes:
                class_id = int(box.cls[0])
                x1, y1, x2, y2 = (float(v) for v in box.xyxy[0].tolist())
                detections.append(DetectionResult(
                    label=names.get(class_id, str(class_id)),
                    score=float(box.conf[0]),
                    bounding_box=(x1, y1, x2 - x1, y2 - y1),
                ))

        return detections


class DetectionService:
    """
    Detection capability shared by every intake run.

    Created once at process start and passed to the pipeline. Loading
    happens at most once; FAILED is terminal for the process lifetime.
    Inference does not mutate the service, so runs may share it freely.
    """

    def __init__(self, detector: ObjectDetector):
        self.detector = detector
        self._state = ModelState.UNLOADED
        self._load_future: Optional[asyncio.Future] = None
        self.failure_reason: Optional[str] = None

    @property
    def state(self) -> ModelState:
        return self._state

    @property
    def is_ready(self) -> bool:
        return self._state == ModelState.READY

    async def load(self) -> ModelState:
        """Load the model once. Later calls join or report the first attempt."""
        if self._state == ModelState.LOADING and self._load_future is not None:
            await asyncio.shield(self._load_future)
            return self._state
        if self._state != ModelState.UNLOADED:
            return self._state

        self._state = ModelState.LOADING
        logger.info("Loading detection model...")
        loop = asyncio.get_running_loop()
        self._load_future = loop.run_in_executor(None, self.detector.load)

        try:
            await asyncio.shield(self._load_future)
        except Exception as e:
            self._state = ModelState.FAILED
            self.failure_reason = str(e)
            logger.error(f"Failed to load detection model: {e}")
            return self._state

        self._state = ModelState.READY
        logger.info("Detection model loaded")
        return self._state

    def ensure_ready(self) -> None:
        """Reject synchronously unless the model is READY."""
        if self._state == ModelState.FAILED:
            raise ModelUnavailableError(
                f"Detection unavailable: {self.failure_reason or 'model failed to load'}"
            )
        if self._state != ModelState.READY:
            raise ModelNotReadyError("Detection model is still loading")

    async def detect(self, image: Any) -> List[DetectionResult]:
        """
        Run the detector once.

        Raises:
            ModelNotReadyError: model is unloaded or loading
            ModelUnavailableError: model failed to load
            InferenceError: detector raised
        """
        self.ensure_ready()
        loop = asyncio.get_running_loop()
        try:
            return await loop.run_in_executor(None, self.detector.detect, image)
        except Exception as e:
            logger.error(f"AI analysis failed: {e}")
            raise InferenceError(f"Analysis failed: {e}") from e
