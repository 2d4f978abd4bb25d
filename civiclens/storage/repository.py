"""
Report repository
Create, list, upvote and status transitions for persisted reports.
"""

import logging
import math
from typing import Any, Dict, List, Optional, Union

from sqlalchemy import select

from civiclens.core.constants import Category, ReportStatus, UNKNOWN_LOCATION
from civiclens.core.errors import ReportNotFoundError
from civiclens.core.geo_utils import is_valid_coordinate
from civiclens.storage.connection import DatabaseConnection
from civiclens.storage.models import Report

logger = logging.getLogger(__name__)


class ReportRepository:
    """Persistence operations on reports. All methods return serialized dicts."""

    def __init__(self, db: DatabaseConnection):
        self.db = db

    def list_reports(
        self,
        status: Optional[Union[ReportStatus, str]] = None,
        category: Optional[Union[Category, str]] = None
    ) -> List[Dict[str, Any]]:
        """List reports, newest first."""
        query = select(Report).order_by(Report.created_at.desc())
        if status is not None:
            query = query.where(Report.status == ReportStatus(status))
        if category is not None:
            query = query.where(Report.category == Category(category).value)

        with self.db.get_session() as session:
            return [r.to_dict() for r in session.scalars(query).all()]

    def create(
        self,
        category: Union[Category, str],
        confidence: float,
        lat: float,
        lng: float,
        address: Optional[str] = None,
        image_url: str = "",
        description: str = ""
    ) -> Dict[str, Any]:
        """
        Persist a new report.

        Raises:
            ValueError: unknown category, non-finite confidence or invalid location
        """
        category = self.validate_fields(category, confidence, lat, lng)

        report = Report(
            category=category.value,
            confidence=float(confidence),
            latitude=float(lat),
            longitude=float(lng),
            address=address or UNKNOWN_LOCATION,
            image_url=image_url or "",
            description=description or "",
        )

        with self.db.get_session() as session:
            session.add(report)
            session.flush()
            data = report.to_dict()

        logger.info(f"New report created: {data['id']} at ({lat}, {lng})")
        return data

    @staticmethod
    def validate_fields(
        category: Union[Category, str],
        confidence: float,
        lat: float,
        lng: float
    ) -> Category:
        """Check required report fields; returns the parsed category."""
        try:
            parsed = Category(category)
        except ValueError:
            raise ValueError(f"Invalid category: {category}") from None
        if confidence is None or not math.isfinite(confidence):
            raise ValueError("confidence must be a finite number")
        if not is_valid_coordinate(lat, lng):
            raise ValueError(f"Invalid location: ({lat}, {lng})")
        return parsed

    def get(self, report_id: str) -> Dict[str, Any]:
        with self.db.get_session() as session:
            return self._load(session, report_id).to_dict()

    def upvote(self, report_id: str) -> Dict[str, Any]:
        """Increment the upvote counter by one."""
        with self.db.get_session() as session:
            report = self._load(session, report_id)
            report.upvotes = (report.upvotes or 0) + 1
            session.flush()
            data = report.to_dict()

        logger.info(f"Report {report_id} upvoted ({data['upvotes']})")
        return data

    def update_status(
        self,
        report_id: str,
        status: Union[ReportStatus, str]
    ) -> Dict[str, Any]:
        """
        Move a report to a new status.

        Raises:
            ValueError: unknown status
            ReportNotFoundError: unknown id
        """
        new_status = ReportStatus(status)
        with self.db.get_session() as session:
            report = self._load(session, report_id)
            old_status = report.status
            report.status = new_status
            session.flush()
            data = report.to_dict()

        logger.info(f"Report {report_id} status: {old_status.value} -> {new_status.value}")
        return data

    def statistics(self) -> Dict[str, Any]:
        """Counts by status and category, plus the share of solved reports."""
        reports = self.list_reports()
        total = len(reports)

        by_status = {s.value: 0 for s in ReportStatus}
        by_category = {c.value: 0 for c in Category}
        total_upvotes = 0

        for report in reports:
            by_status[report["status"]] = by_status.get(report["status"], 0) + 1
            by_category[report["category"]] = by_category.get(report["category"], 0) + 1
            total_upvotes += report["upvotes"]

        solved = by_status[ReportStatus.SOLVED.value]
        return {
            "total_reports": total,
            "by_status": by_status,
            "by_category": by_category,
            "total_upvotes": total_upvotes,
            "trust_score": round(solved / total * 100) if total > 0 else 0,
        }

    def _load(self, session, report_id: str) -> Report:
        report = session.get(Report, report_id)
        if report is None:
            raise ReportNotFoundError(report_id)
        return report
