"""
Intake pipeline
Turns a captured photo plus a GPS fix into a validated, categorized,
deduplicated report draft.
"""

import asyncio
import logging
import random
from enum import Enum
from typing import Any, Dict, Iterable, Optional, Union

from civiclens.core.config import settings
from civiclens.core.constants import Category
from civiclens.core.errors import ImageDecodeError, InferenceError
from civiclens.intake.draft import ReportDraft
from civiclens.intake.duplicate_index import DuplicateIndex
from civiclens.intake.guidance import guidance_for
from civiclens.intake.policy import find_forbidden, infer_category, synthesize_confidence
from civiclens.location.models import GPSFix
from civiclens.ml.detection import DetectionService
from civiclens.ml.imaging import assess_quality, decode_image, to_data_url

logger = logging.getLogger(__name__)


class PipelineState(Enum):
    """Where the pipeline stands for the current image."""
    IDLE = "idle"
    ANALYZING = "analyzing"
    PRESENTED = "presented"


class IntakePipeline:
    """
    Sequential analysis of one image at a time.

    Steps: decode, detect, forbidden gate, duplicate check, category,
    confidence. Every call to ``analyze`` takes a new run token; a run whose
    token is no longer current discards its result instead of writing state.
    """

    def __init__(
        self,
        detection: DetectionService,
        forbidden_threshold: Optional[float] = None,
        duplicate_radius_km: Optional[float] = None,
        duplicate_window_degrees: Optional[float] = None,
        duplicate_acceptance_probability: Optional[float] = None,
        default_category: Optional[Union[Category, str]] = None,
        confidence_floor: Optional[int] = None,
        confidence_ceiling: Optional[int] = None,
        rng: Optional[random.Random] = None
    ):
        self.detection = detection
        self.forbidden_threshold = (
            forbidden_threshold if forbidden_threshold is not None
            else settings.forbidden_score_threshold
        )
        self.duplicate_radius_km = (
            duplicate_radius_km if duplicate_radius_km is not None
            else settings.duplicate_radius_km
        )
        self.duplicate_window_degrees = (
            duplicate_window_degrees if duplicate_window_degrees is not None
            else settings.duplicate_window_degrees
        )
        self.duplicate_acceptance_probability = (
            duplicate_acceptance_probability if duplicate_acceptance_probability is not None
            else settings.duplicate_acceptance_probability
        )
        self.default_category = Category(default_category or settings.default_category)
        self.confidence_floor = (
            confidence_floor if confidence_floor is not None else settings.confidence_floor
        )
        self.confidence_ceiling = (
            confidence_ceiling if confidence_ceiling is not None else settings.confidence_ceiling
        )
        self._rng = rng or random.Random()

        self._state = PipelineState.IDLE
        self._draft: Optional[ReportDraft] = None
        self._token = 0
        self.last_error: Optional[str] = None

    @property
    def state(self) -> PipelineState:
        return self._state

    @property
    def draft(self) -> Optional[ReportDraft]:
        return self._draft

    def is_current(self, token: int) -> bool:
        return token == self._token

    def reset(self) -> None:
        """Drop the current draft and invalidate any in-flight run."""
        self._token += 1
        self._state = PipelineState.IDLE
        self._draft = None
        self.last_error = None

    def build_index(
        self,
        known_reports: Iterable[Union[Dict[str, Any], Any]]
    ) -> DuplicateIndex:
        """Index serialized reports for the duplicate check."""
        return DuplicateIndex.from_reports(
            known_reports,
            radius_km=self.duplicate_radius_km,
            cell_degrees=self.duplicate_window_degrees,
        )

    async def analyze(
        self,
        image_data: bytes,
        fix: Optional[GPSFix] = None,
        known_reports: Union[DuplicateIndex, Iterable[Dict[str, Any]]] = ()
    ) -> Optional[ReportDraft]:
        """
        Analyse one image.

        Returns:
            The presented draft, or None when a newer run superseded this one.

        Raises:
            ModelNotReadyError: model still loading; nothing was started
            ModelUnavailableError: model failed to load
            ImageDecodeError, InferenceError: transient failure; state reset to IDLE
        """
        self.detection.ensure_ready()

        self._token += 1
        token = self._token
        self._state = PipelineState.ANALYZING
        self._draft = None
        self.last_error = None

        draft = ReportDraft(image_blob=image_data, preview_url=to_data_url(image_data))
        loop = asyncio.get_running_loop()

        try:
            image = await loop.run_in_executor(None, decode_image, image_data)
        except ImageDecodeError as e:
            return self._fail(token, e)
        if not self.is_current(token):
            return self._discard(token)

        draft.image_quality = assess_quality(image)

        try:
            detections = await self.detection.detect(image)
        except InferenceError as e:
            return self._fail(token, e)
        if not self.is_current(token):
            return self._discard(token)

        draft.detections = list(detections)
        logger.debug(f"Run {token} predictions: {[d.label for d in draft.detections]}")

        forbidden = find_forbidden(draft.detections, threshold=self.forbidden_threshold)
        if forbidden is not None:
            draft.mark_invalid(forbidden.label)
            logger.info(
                f"Run {token}: invalid image, non-civic object '{forbidden.label}' "
                f"({forbidden.score:.2f})"
            )
            return self._present(token, draft)

        if fix is not None:
            index = (
                known_reports if isinstance(known_reports, DuplicateIndex)
                else self.build_index(known_reports)
            )
            match = index.find_match(fix)
            if match is not None and self._rng.random() < self.duplicate_acceptance_probability:
                draft.mark_duplicate(match.report.id, match.distance_km)
                logger.info(
                    f"Run {token}: duplicate of report {match.report.id} "
                    f"({match.distance_km * 1000:.0f} m away)"
                )
                return self._present(token, draft)

        category = infer_category(draft.detections, default=self.default_category)
        confidence = synthesize_confidence(
            draft.detections,
            category,
            floor=self.confidence_floor,
            ceiling=self.confidence_ceiling,
        )
        draft.categorize(category, confidence, guidance_for(category))
        logger.info(f"Run {token}: category={category.value} confidence={confidence}")

        return self._present(token, draft)

    def _present(self, token: int, draft: ReportDraft) -> Optional[ReportDraft]:
        if not self.is_current(token):
            return self._discard(token)
        self._draft = draft
        self._state = PipelineState.PRESENTED
        return draft

    def _discard(self, token: int) -> None:
        logger.info(f"Run {token} superseded; result discarded")
        return None

    def _fail(self, token: int, error: Exception) -> None:
        if not self.is_current(token):
            logger.info(f"Run {token} failed after being superseded: {error}")
            return None
        self._state = PipelineState.IDLE
        self._draft = None
        self.last_error = str(error)
        raise error
