"""
Report draft produced by the intake pipeline
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from civiclens.core.constants import Category
from civiclens.intake.guidance import IssueGuidance
from civiclens.ml.detection import DetectionResult


class DraftOutcome(Enum):
    """Terminal outcome of an analysed draft."""
    PENDING = "pending"
    INVALID = "invalid"
    DUPLICATE = "duplicate"
    CATEGORIZED = "categorized"


@dataclass
class ReportDraft:
    """
    In-progress report, not yet persisted.

    Exactly one of INVALID, DUPLICATE or CATEGORIZED applies once analysis
    completes; the marking methods refuse to set a second outcome.
    """
    image_blob: bytes
    preview_url: str
    category: Optional[Category] = None
    confidence: Optional[int] = None
    is_duplicate: bool = False
    is_invalid: bool = False

    # Analysis details
    duplicate_of: Optional[str] = None
    duplicate_distance_km: Optional[float] = None
    rejected_label: Optional[str] = None
    detections: List[DetectionResult] = field(default_factory=list)
    guidance: Optional[IssueGuidance] = None
    image_quality: str = "good"

    @property
    def outcome(self) -> DraftOutcome:
        if self.is_invalid:
            return DraftOutcome.INVALID
        if self.is_duplicate:
            return DraftOutcome.DUPLICATE
        if self.category is not None:
            return DraftOutcome.CATEGORIZED
        return DraftOutcome.PENDING

    @property
    def is_complete(self) -> bool:
        return self.outcome != DraftOutcome.PENDING

    def _ensure_pending(self) -> None:
        if self.outcome != DraftOutcome.PENDING:
            raise RuntimeError(f"Draft already resolved as {self.outcome.value}")

    def mark_invalid(self, label: Optional[str] = None) -> None:
        self._ensure_pending()
        self.is_invalid = True
        self.rejected_label = label

    def mark_duplicate(self, report_id: str, distance_km: Optional[float] = None) -> None:
        self._ensure_pending()
        self.is_duplicate = True
        self.duplicate_of = report_id
        self.duplicate_distance_km = distance_km

    def categorize(
        self,
        category: Category,
        confidence: int,
        guidance: Optional[IssueGuidance] = None
    ) -> None:
        self._ensure_pending()
        self.category = category
        self.confidence = confidence
        self.guidance = guidance

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary (image bytes excluded)."""
        return {
            "outcome": self.outcome.value,
            "category": self.category.value if self.category else None,
            "confidence": self.confidence,
            "is_duplicate": self.is_duplicate,
            "is_invalid": self.is_invalid,
            "duplicate_of": self.duplicate_of,
            "duplicate_distance_km": (
                round(self.duplicate_distance_km, 3)
                if self.duplicate_distance_km is not None else None
            ),
            "rejected_label": self.rejected_label,
            "image_quality": self.image_quality,
            "detections": [d.to_dict() for d in self.detections],
            "guidance": self.guidance.to_dict() if self.guidance else None,
        }
