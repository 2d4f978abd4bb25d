"""
Reports API client
Lists reports, submits finished drafts and upvotes duplicates.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from civiclens.core.config import settings
from civiclens.core.errors import SubmissionDisabledError, SubmissionError
from civiclens.intake.draft import ReportDraft
from civiclens.location.models import AddressResolution, GPSFix
from civiclens.ml.imaging import sniff_mime_type

logger = logging.getLogger(__name__)

_EXTENSIONS = {
    "image/jpeg": ".jpg",
    "image/png": ".png",
    "image/gif": ".gif",
    "image/bmp": ".bmp",
    "image/webp": ".webp",
}


def can_submit(draft: Optional[ReportDraft], fix: Optional[GPSFix]) -> bool:
    """Submission needs a fix, a category and an image."""
    return (
        fix is not None
        and draft is not None
        and draft.category is not None
        and bool(draft.image_blob)
    )


class SubmissionClient:
    """
    Async client for the CivicLens reports API.

    Usage:
        async with SubmissionClient("http://localhost:5000") as client:
            reports = await client.list_reports()
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.base_url = (base_url or settings.api_base_url).rstrip("/")
        self.timeout = timeout or settings.http_timeout_seconds
        self._client = client or httpx.AsyncClient(base_url=self.base_url, timeout=self.timeout)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def list_reports(self) -> List[Dict[str, Any]]:
        """Fetch all reports, newest first."""
        response = await self._request("GET", "/api/reports")
        return response.json()

    async def submit(
        self,
        draft: Optional[ReportDraft],
        fix: Optional[GPSFix],
        address: Optional[AddressResolution] = None,
        description: Optional[str] = None
    ) -> Dict[str, Any]:
        """
        Send a single create request for a categorized draft.

        The draft is not modified, so a failed submission can be retried.

        Raises:
            SubmissionDisabledError: fix, category or image missing; nothing sent
            SubmissionError: network failure or rejected by the server
        """
        if not can_submit(draft, fix):
            raise SubmissionDisabledError("A location, a category and an image are required")

        data = {
            "category": draft.category.value,
            "confidence": str(draft.confidence),
            "lat": str(fix.lat),
            "lng": str(fix.lng),
            "address": address.text if address else "",
        }
        if description:
            data["description"] = description

        mime = sniff_mime_type(draft.image_blob)
        files = {"image": (f"report{_EXTENSIONS.get(mime, '')}", draft.image_blob, mime)}

        response = await self._request("POST", "/api/reports", data=data, files=files)
        report = response.json()
        logger.info(f"Report submitted: {report.get('id')}")
        return report

    async def upvote(self, report_id: str) -> Dict[str, Any]:
        """Upvote an existing report."""
        response = await self._request("PUT", f"/api/reports/{report_id}/upvote")
        return response.json()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Network error calling {method} {path}: {e}")
            raise SubmissionError(f"Network error: {e}") from e

        if response.is_error:
            raise SubmissionError(self._error_message(response), status_code=response.status_code)
        return response

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        if isinstance(body, dict) and body.get("message"):
            return str(body["message"])
        return f"HTTP {response.status_code}"
