"""
CivicLens - Constants and Reference Data
Static values used throughout the application.
"""

from enum import Enum
from typing import FrozenSet, Tuple


class Category(str, Enum):
    """Civic issue categories a report can carry."""
    WASTE = "Waste"
    WATER = "Water"
    ROAD = "Road"


class ReportStatus(str, Enum):
    """Lifecycle of a persisted report."""
    NOT_SOLVED = "not_solved"
    IN_PROGRESS = "in_progress"
    SOLVED = "solved"


# =============================================================================
# DETECTION LABELS (COCO class names)
# =============================================================================

# Labels that mark a photo as non-civic: people, animals, personal/indoor items
FORBIDDEN_LABELS: FrozenSet[str] = frozenset({
    # Living beings
    "person", "cat", "dog", "bird", "horse", "sheep", "cow", "elephant",
    "bear", "zebra", "giraffe",
    # Indoor/personal items
    "backpack", "umbrella", "handbag", "tie", "suitcase", "bed", "dining table",
    "toilet", "tv", "laptop", "mouse", "remote", "keyboard", "cell phone",
    "microwave", "oven", "toaster", "sink", "refrigerator", "book", "clock",
    "vase", "scissors", "teddy bear", "hair drier", "toothbrush",
    # Sports
    "frisbee", "skis", "snowboard", "sports ball", "kite", "baseball bat",
    "baseball glove", "skateboard", "surfboard", "tennis racket",
    # Furniture
    "chair", "couch", "potted plant",
})

# Checked in order: Waste before Road. Water has no keywords.
CATEGORY_KEYWORDS: Tuple[Tuple[Category, FrozenSet[str]], ...] = (
    (Category.WASTE, frozenset({
        "bottle", "cup", "bowl", "banana", "apple", "sandwich", "orange",
        "broccoli", "carrot", "hot dog", "pizza", "donut", "cake",
    })),
    (Category.ROAD, frozenset({
        "car", "bus", "truck", "motorcycle", "traffic light", "stop sign",
    })),
)

# =============================================================================
# ADDRESSES
# =============================================================================

ADDRESS_UNAVAILABLE = "Location details unavailable"
UNKNOWN_LOCATION = "Unknown Location"

# =============================================================================
# MAP
# =============================================================================

OSM_TILE_URL = "https://{s}.tile.openstreetmap.org/{z}/{x}/{y}.png"
OSM_ATTRIBUTION = "&copy; OpenStreetMap contributors"
OSM_MAX_ZOOM = 19
