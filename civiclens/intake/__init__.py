"""
CivicLens - Intake Module
Photo analysis, duplicate detection and draft construction.
"""

from civiclens.intake.draft import ReportDraft, DraftOutcome
from civiclens.intake.duplicate_index import DuplicateIndex, DuplicateMatch, KnownReport
from civiclens.intake.guidance import IssueGuidance, guidance_for
from civiclens.intake.policy import (
    find_forbidden,
    infer_category,
    synthesize_confidence,
)
from civiclens.intake.pipeline import IntakePipeline, PipelineState

__all__ = [
    "ReportDraft",
    "DraftOutcome",
    "DuplicateIndex",
    "DuplicateMatch",
    "KnownReport",
    "IssueGuidance",
    "guidance_for",
    "find_forbidden",
    "infer_category",
    "synthesize_confidence",
    "IntakePipeline",
    "PipelineState",
]
