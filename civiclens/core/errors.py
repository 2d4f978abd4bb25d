"""
CivicLens - Error types
"""

from typing import Optional


class CivicLensError(Exception):
    """Base class for application errors."""


class LocationUnavailableError(CivicLensError):
    """Position request was denied, failed or timed out."""


class ModelNotReadyError(CivicLensError):
    """Detection requested before the model finished loading."""


class ModelUnavailableError(CivicLensError):
    """The detection model failed to load; detection is disabled."""


class InferenceError(CivicLensError):
    """The detector raised while analysing an image."""


class ImageDecodeError(CivicLensError):
    """Image bytes could not be decoded."""


class SubmissionDisabledError(CivicLensError):
    """Submit attempted without a fix, a category or an image."""


class SubmissionError(CivicLensError):
    """Create request failed on the network or on the server."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class ReportNotFoundError(CivicLensError):
    """No report with the given id."""

    def __init__(self, report_id: str):
        super().__init__(f"Report not found: {report_id}")
        self.report_id = report_id
