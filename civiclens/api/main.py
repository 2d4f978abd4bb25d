"""
CivicLens - REST API

FastAPI application for civic hazard reports: list, create, upvote,
status transitions and server-side photo analysis.

Run with: uvicorn civiclens.api.main:app --reload
"""

import asyncio
import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import List, Optional

from fastapi import FastAPI, File, Form, HTTPException, Request, UploadFile
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from starlette.exceptions import HTTPException as StarletteHTTPException

from civiclens import __version__
from civiclens.core.config import settings
from civiclens.core.constants import ReportStatus
from civiclens.core.errors import (
    ImageDecodeError,
    InferenceError,
    ModelNotReadyError,
    ModelUnavailableError,
    ReportNotFoundError,
)
from civiclens.intake.pipeline import IntakePipeline
from civiclens.location.models import GPSFix
from civiclens.ml.detection import DetectionService, ModelState, YoloDetector
from civiclens.storage.connection import DatabaseConnection
from civiclens.storage.images import ImageStore
from civiclens.storage.repository import ReportRepository

logger = logging.getLogger(__name__)


# ============================================================================
# Pydantic Models
# ============================================================================

class CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LocationModel(BaseModel):
    lat: float
    lng: float


class ReportResponse(CamelModel):
    """Persisted report."""
    id: str
    category: str
    confidence: float
    location: LocationModel
    address: str
    image_url: str
    description: str
    status: ReportStatus
    upvotes: int
    created_at: str


class StatusUpdateRequest(BaseModel):
    """Request to move a report to a new status."""
    status: ReportStatus


class ReportStatsResponse(BaseModel):
    """Report statistics."""
    total_reports: int
    by_status: dict
    by_category: dict
    total_upvotes: int
    trust_score: int


class DetectionModel(BaseModel):
    label: str
    score: float
    bounding_box: List[float]


class DraftResponse(BaseModel):
    """Outcome of analysing one photo."""
    outcome: str
    category: Optional[str]
    confidence: Optional[int]
    is_duplicate: bool
    is_invalid: bool
    duplicate_of: Optional[str]
    duplicate_distance_km: Optional[float]
    rejected_label: Optional[str]
    image_quality: str
    detections: List[DetectionModel]
    guidance: Optional[dict]


class HealthResponse(BaseModel):
    """API health check response."""
    status: str
    version: str
    timestamp: str
    modules: dict


# ============================================================================
# Application
# ============================================================================

def create_app(
    database_url: Optional[str] = None,
    uploads_dir: Optional[str] = None,
    detection: Optional[DetectionService] = None,
    load_model: bool = True
) -> FastAPI:
    """
    Build the API application.

    Args:
        database_url: SQLAlchemy URL (defaults to settings)
        uploads_dir: Directory for uploaded images (defaults to settings)
        detection: Detection service; a YOLO-backed one is created if omitted
        load_model: Start loading the model at startup
    """
    uploads_path = uploads_dir or settings.uploads_dir

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        db = DatabaseConnection(database_url=database_url)
        db.create_tables()
        app.state.db = db
        app.state.repository = ReportRepository(db)
        app.state.images = ImageStore(directory=uploads_path)
        app.state.detection = detection or DetectionService(YoloDetector())

        load_task = None
        if load_model and app.state.detection.state == ModelState.UNLOADED:
            load_task = asyncio.create_task(app.state.detection.load())

        yield

        if load_task is not None and not load_task.done():
            load_task.cancel()
        db.close()

    app = FastAPI(
        title="CivicLens",
        description="Citizen reports of civic hazards: waste, stagnant water and road damage",
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.mount(
        settings.uploads_url_prefix,
        StaticFiles(directory=uploads_path, check_dir=False),
        name="uploads",
    )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        parts = []
        for error in errors:
            field = ".".join(str(p) for p in error.get("loc", ()) if p not in ("body", "query", "path"))
            parts.append(f"{field}: {error.get('msg')}" if field else str(error.get("msg")))
        return JSONResponse(status_code=400, content={"message": "; ".join(parts)})

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(status_code=exc.status_code, content={"message": str(exc.detail)})

    _register_routes(app)
    return app


def _register_routes(app: FastAPI) -> None:

    # ========================================================================
    # System Routes
    # ========================================================================

    @app.get("/health", response_model=HealthResponse, tags=["System"])
    async def health_check(request: Request):
        """Check API health status and module availability."""
        detection: DetectionService = request.app.state.detection
        return HealthResponse(
            status="healthy",
            version=__version__,
            timestamp=datetime.now(timezone.utc).isoformat(),
            modules={
                "database": request.app.state.db.check_connection(),
                "detection_model": detection.state.value,
            },
        )

    # ========================================================================
    # Report Routes
    # ========================================================================

    @app.get("/api/reports", response_model=List[ReportResponse], tags=["Reports"])
    async def list_reports(
        request: Request,
        status: Optional[ReportStatus] = None,
        category: Optional[str] = None,
    ):
        """List reports, newest first."""
        repository: ReportRepository = request.app.state.repository
        try:
            return repository.list_reports(status=status, category=category)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

    @app.post("/api/reports", response_model=ReportResponse, status_code=201, tags=["Reports"])
    async def create_report(
        request: Request,
        category: str = Form(...),
        confidence: float = Form(...),
        lat: float = Form(...),
        lng: float = Form(...),
        address: Optional[str] = Form(None),
        description: Optional[str] = Form(None),
        image: Optional[UploadFile] = File(None),
    ):
        """
        Create a report.

        The image is optional; without one the stored imageUrl is empty.
        """
        repository: ReportRepository = request.app.state.repository
        images: ImageStore = request.app.state.images

        try:
            repository.validate_fields(category, confidence, lat, lng)
        except ValueError as e:
            raise HTTPException(status_code=400, detail=str(e))

        image_url = ""
        if image is not None and image.filename:
            data = await image.read()
            if data:
                image_url = images.save(data, image.filename)

        try:
            return repository.create(
                category=category,
                confidence=confidence,
                lat=lat,
                lng=lng,
                address=address,
                image_url=image_url,
                description=description or "",
            )
        except ValueError as e:
            if image_url:
                images.delete(image_url)
            raise HTTPException(status_code=400, detail=str(e))
        except Exception:
            if image_url:
                images.delete(image_url)
            raise

    @app.get("/api/reports/stats/summary", response_model=ReportStatsResponse, tags=["Reports"])
    async def get_report_stats(request: Request):
        """Counts by status and category and the share of solved reports."""
        return request.app.state.repository.statistics()

    @app.get("/api/reports/{report_id}", response_model=ReportResponse, tags=["Reports"])
    async def get_report(request: Request, report_id: str):
        """Get report by ID."""
        try:
            return request.app.state.repository.get(report_id)
        except ReportNotFoundError:
            raise HTTPException(status_code=404, detail="Report not found")

    @app.put("/api/reports/{report_id}/upvote", response_model=ReportResponse, tags=["Reports"])
    async def upvote_report(request: Request, report_id: str):
        """Add one upvote to an existing report."""
        try:
            return request.app.state.repository.upvote(report_id)
        except ReportNotFoundError:
            raise HTTPException(status_code=404, detail="Report not found")

    @app.put("/api/reports/{report_id}/status", response_model=ReportResponse, tags=["Reports"])
    async def update_report_status(request: Request, report_id: str, body: StatusUpdateRequest):
        """Move a report to not_solved, in_progress or solved."""
        try:
            return request.app.state.repository.update_status(report_id, body.status)
        except ReportNotFoundError:
            raise HTTPException(status_code=404, detail="Report not found")

    # ========================================================================
    # Intake Routes
    # ========================================================================

    @app.post("/api/intake/analyze", response_model=DraftResponse, tags=["Intake"])
    async def analyze_photo(
        request: Request,
        image: UploadFile = File(...),
        lat: Optional[float] = Form(None),
        lng: Optional[float] = Form(None),
    ):
        """
        Run the intake pipeline on a photo.

        With a location, the photo is also checked against existing reports
        for duplicates.
        """
        fix = None
        if lat is not None and lng is not None:
            try:
                fix = GPSFix(lat=lat, lng=lng)
            except ValueError as e:
                raise HTTPException(status_code=400, detail=str(e))

        pipeline = IntakePipeline(request.app.state.detection)
        known_reports = request.app.state.repository.list_reports() if fix else []
        data = await image.read()

        try:
            draft = await pipeline.analyze(data, fix=fix, known_reports=known_reports)
        except ModelNotReadyError:
            raise HTTPException(status_code=503, detail="Please wait, AI model is still loading")
        except ModelUnavailableError as e:
            raise HTTPException(status_code=503, detail=str(e))
        except ImageDecodeError as e:
            raise HTTPException(status_code=400, detail=str(e))
        except InferenceError as e:
            raise HTTPException(status_code=500, detail=str(e))

        return draft.to_dict()


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host=settings.api_host, port=settings.api_port)
