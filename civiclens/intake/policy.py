"""
Draft decision rules: forbidden gate, category inference, confidence synthesis
"""

from typing import Iterable, List, Optional

from civiclens.core.constants import CATEGORY_KEYWORDS, FORBIDDEN_LABELS, Category
from civiclens.ml.detection import DetectionResult


def find_forbidden(
    detections: Iterable[DetectionResult],
    threshold: float = 0.50,
    labels: Iterable[str] = FORBIDDEN_LABELS
) -> Optional[DetectionResult]:
    """Return the first forbidden detection scoring strictly above the threshold."""
    forbidden = frozenset(labels)
    for detection in detections:
        if detection.label in forbidden and detection.score > threshold:
            return detection
    return None


def infer_category(
    detections: Iterable[DetectionResult],
    default: Category = Category.WATER
) -> Category:
    """
    Map detections to an issue category.

    Keyword sets are checked in table order (Waste before Road); when no
    label matches, the explicit default is returned.
    """
    labels = {d.label for d in detections}
    for category, keywords in CATEGORY_KEYWORDS:
        if labels & keywords:
            return category
    return Category(default)


def supporting_detections(
    detections: Iterable[DetectionResult],
    category: Category
) -> List[DetectionResult]:
    """Detections whose label implies the given category."""
    keywords = dict(CATEGORY_KEYWORDS).get(Category(category), frozenset())
    return [d for d in detections if d.label in keywords]


def synthesize_confidence(
    detections: Iterable[DetectionResult],
    category: Category,
    floor: int = 80,
    ceiling: int = 99
) -> int:
    """
    Confidence percentage for a categorized draft.

    Uses the best score among detections supporting the category (all
    detections when none do), clamped to [floor, ceiling].
    """
    detections = list(detections)
    relevant = supporting_detections(detections, category) or detections
    if not relevant:
        return floor

    best = max(d.score for d in relevant)
    return max(floor, min(ceiling, int(round(best * 100))))
