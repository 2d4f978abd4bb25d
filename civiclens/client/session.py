"""
Report session
Ties location, address, map, intake pipeline and submission together for
one citizen report, tolerating the session going away mid-flight.
"""

import asyncio
import logging
from typing import Any, Dict, List, Optional, Set

from civiclens.core.errors import (
    ModelUnavailableError,
    SubmissionDisabledError,
    SubmissionError,
)
from civiclens.client.submission import SubmissionClient, can_submit
from civiclens.intake.draft import DraftOutcome, ReportDraft
from civiclens.intake.pipeline import IntakePipeline
from civiclens.location.acquirer import LocationAcquirer
from civiclens.location.address_resolver import NominatimResolver
from civiclens.location.models import AddressResolution, GPSFix
from civiclens.visualization.map_viewport import MapSurface, MapViewport

logger = logging.getLogger(__name__)


class ReportSession:
    """
    One report from capture to submission.

    Work started by a fix (address lookup, map mount) runs in background
    tasks that check ``alive`` before touching session state.
    """

    def __init__(
        self,
        acquirer: LocationAcquirer,
        resolver: NominatimResolver,
        pipeline: IntakePipeline,
        client: SubmissionClient,
        viewport: Optional[MapViewport] = None,
        surface: Optional[MapSurface] = None
    ):
        self.acquirer = acquirer
        self.resolver = resolver
        self.pipeline = pipeline
        self.client = client
        self.viewport = viewport
        self.surface = surface

        self.alive = True
        self.address: Optional[AddressResolution] = None
        self.notices: List[str] = []
        self.submitted_report: Optional[Dict[str, Any]] = None
        self.submit_error: Optional[str] = None

        self._tasks: Set[asyncio.Task] = set()
        self._selection = 0

        self.acquirer.add_fix_listener(self._on_fix)

    @property
    def fix(self) -> Optional[GPSFix]:
        return self.acquirer.fix

    @property
    def draft(self) -> Optional[ReportDraft]:
        return self.pipeline.draft

    @property
    def can_submit(self) -> bool:
        return self.alive and can_submit(self.draft, self.fix)

    def notify(self, message: str) -> None:
        """Record a user-facing notice, once."""
        if message not in self.notices:
            self.notices.append(message)
            logger.warning(message)

    # ------------------------------------------------------------------
    # Location
    # ------------------------------------------------------------------

    async def start(self) -> Optional[GPSFix]:
        """Start acquiring the position."""
        fix = await self.acquirer.start()
        if fix is None and self.alive:
            self.notify(f"GPS blocked: {self.acquirer.last_error}")
        return fix

    async def retry_location(self) -> Optional[GPSFix]:
        """User initiated retry after the position was blocked."""
        fix = await self.acquirer.retry()
        if fix is None and self.alive:
            self.notify(f"GPS blocked: {self.acquirer.last_error}")
        return fix

    def _on_fix(self, fix: GPSFix) -> None:
        if not self.alive:
            return
        self._spawn(self._resolve_address(fix))
        if self.viewport is not None and self.surface is not None:
            self._spawn(self.viewport.mount(fix, self.surface))

    def _spawn(self, coro) -> None:
        task = asyncio.ensure_future(coro)
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if not task.cancelled() and task.exception() is not None:
            logger.error(f"Background task failed: {task.exception()}")

    async def _resolve_address(self, fix: GPSFix) -> None:
        address = await self.resolver.resolve(fix)
        if not self.alive or self.acquirer.fix is not fix:
            return
        self.address = address
        if not address.resolved:
            self.notify(address.text)

    async def wait_for_background(self) -> None:
        """Wait until address lookup and map setup have settled."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Intake
    # ------------------------------------------------------------------

    async def _known_reports(self) -> List[Dict[str, Any]]:
        try:
            return await self.client.list_reports()
        except SubmissionError as e:
            self.notify(f"Could not load existing reports; duplicate check skipped ({e.message})")
            return []

    async def select_image(self, image_data: bytes) -> Optional[ReportDraft]:
        """
        Analyse a newly selected image.

        Returns None when a later selection superseded this one or the
        session was closed.

        Raises:
            ModelNotReadyError: model still loading; nothing was started
            ModelUnavailableError: detection is disabled for this process
            ImageDecodeError, InferenceError: analysis failed; retry allowed
        """
        try:
            self.pipeline.detection.ensure_ready()
        except ModelUnavailableError as e:
            self.notify(str(e))
            raise

        self._selection += 1
        selection = self._selection
        self.submitted_report = None
        self.submit_error = None
        # Invalidate any run still in flight
        self.pipeline.reset()

        known = await self._known_reports() if self.fix is not None else []
        if not self.alive or selection != self._selection:
            return None

        draft = await self.pipeline.analyze(image_data, fix=self.fix, known_reports=known)
        if not self.alive:
            return None
        return draft

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    async def submit(self, description: Optional[str] = None) -> Dict[str, Any]:
        """
        Persist the current draft.

        On failure the draft stays in place so the user can retry.
        """
        if not self.can_submit:
            raise SubmissionDisabledError("A location, a category and an image are required")

        self.submit_error = None
        try:
            report = await self.client.submit(
                self.draft, self.fix, self.address, description=description
            )
        except SubmissionError as e:
            self.submit_error = e.message
            raise

        self.submitted_report = report
        return report

    async def upvote_duplicate(self) -> Dict[str, Any]:
        """Upvote the existing report a duplicate draft points to."""
        draft = self.draft
        if draft is None or draft.outcome != DraftOutcome.DUPLICATE:
            raise RuntimeError("Current draft is not a duplicate")
        return await self.client.upvote(draft.duplicate_of)

    # ------------------------------------------------------------------
    # Teardown
    # ------------------------------------------------------------------

    async def close(self) -> None:
        """Tear the session down; pending work is cancelled or ignored."""
        self.alive = False
        self.acquirer.cancel()
        self.pipeline.reset()
        if self.viewport is not None:
            self.viewport.teardown()

        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
