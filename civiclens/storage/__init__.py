"""
CivicLens - Storage Module
Report persistence and uploaded image storage.
"""

from civiclens.storage.connection import DatabaseConnection
from civiclens.storage.models import Base, Report
from civiclens.storage.repository import ReportRepository
from civiclens.storage.images import ImageStore

__all__ = [
    "DatabaseConnection",
    "Base",
    "Report",
    "ReportRepository",
    "ImageStore",
]
