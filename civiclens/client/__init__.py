"""
CivicLens - Client Module
Reports API client and the report session orchestrator.
"""

from civiclens.client.submission import SubmissionClient, can_submit
from civiclens.client.session import ReportSession

__all__ = [
    "SubmissionClient",
    "can_submit",
    "ReportSession",
]
