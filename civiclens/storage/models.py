"""
SQLAlchemy models for CivicLens
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Dict

from sqlalchemy import (
    CheckConstraint, Column, DateTime, Float, Index, Integer, String, Text,
    Enum as SQLEnum,
)
from sqlalchemy.orm import declarative_base

from civiclens.core.constants import ReportStatus, UNKNOWN_LOCATION

Base = declarative_base()


def utcnow() -> datetime:
    """Naive UTC timestamp (SQLite drops tzinfo)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def new_report_id() -> str:
    return uuid.uuid4().hex


class Report(Base):
    """
    Citizen report of a civic hazard.

    Mutated only by status transitions and upvotes; never deleted.
    """
    __tablename__ = "reports"

    id = Column(String(32), primary_key=True, default=new_report_id)

    # Classification
    category = Column(String(20), nullable=False, index=True)
    confidence = Column(Float, nullable=False)

    # Location
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    address = Column(String(500), nullable=False, default=UNKNOWN_LOCATION)

    # Content
    image_url = Column(String(500), nullable=False, default="")
    description = Column(Text, nullable=False, default="")

    # Lifecycle
    status = Column(
        SQLEnum(
            ReportStatus,
            name="report_status",
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
        default=ReportStatus.NOT_SOLVED,
    )
    upvotes = Column(Integer, nullable=False, default=0)
    created_at = Column(DateTime, nullable=False, default=utcnow)

    __table_args__ = (
        Index("idx_report_location", latitude, longitude),
        Index("idx_report_created_at", created_at),
        CheckConstraint("upvotes >= 0", name="ck_report_upvotes_non_negative"),
    )

    def __repr__(self):
        return f"<Report({self.id}, {self.category}, lat={self.latitude}, lng={self.longitude})>"

    def to_dict(self) -> Dict[str, Any]:
        """Serialize in the wire format used by the reports API."""
        return {
            "id": self.id,
            "category": self.category,
            "confidence": self.confidence,
            "location": {"lat": self.latitude, "lng": self.longitude},
            "address": self.address,
            "imageUrl": self.image_url,
            "description": self.description,
            "status": self.status.value if self.status else ReportStatus.NOT_SOLVED.value,
            "upvotes": self.upvotes,
            "createdAt": self.created_at.isoformat() + "Z" if self.created_at else None,
        }
