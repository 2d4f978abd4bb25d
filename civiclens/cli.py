#!/usr/bin/env python3
"""
CivicLens - Command line entry point

    civiclens serve [--host HOST] [--port PORT]
    civiclens report PHOTO [--lat LAT --lng LNG] [--map report_map.html] [--submit]
"""

import argparse
import asyncio
import sys
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv

from civiclens.core.config import settings
from civiclens.core.errors import (
    ImageDecodeError,
    InferenceError,
    ModelUnavailableError,
    SubmissionError,
)
from civiclens.core.logging import setup_logging
from civiclens.client.session import ReportSession
from civiclens.client.submission import SubmissionClient
from civiclens.intake.draft import DraftOutcome
from civiclens.intake.pipeline import IntakePipeline
from civiclens.location.acquirer import (
    FixedPositionProvider,
    LocationAcquirer,
    NetworkPositionProvider,
)
from civiclens.location.address_resolver import NominatimResolver
from civiclens.ml.detection import DetectionService, ModelState, YoloDetector
from civiclens.visualization.map_viewport import MapSurface, MapViewport


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="civiclens", description="Civic hazard reporting")
    subparsers = parser.add_subparsers(dest="command", required=True)

    serve = subparsers.add_parser("serve", help="Run the reports API")
    serve.add_argument("--host", default=settings.api_host)
    serve.add_argument("--port", type=int, default=settings.api_port)
    serve.add_argument("--reload", action="store_true")

    report = subparsers.add_parser("report", help="Analyse a photo and submit a report")
    report.add_argument("image", help="Path to the photo")
    report.add_argument("--lat", type=float, help="Latitude (default: network position)")
    report.add_argument("--lng", type=float, help="Longitude (default: network position)")
    report.add_argument("--server", default=settings.api_base_url, help="Reports API base URL")
    report.add_argument("--map", dest="map_path", help="Write a location map to this HTML file")
    report.add_argument("--description", help="Optional description")
    report.add_argument("--submit", action="store_true", help="Submit the report")
    report.add_argument("--upvote", action="store_true", help="Upvote the existing report on duplicates")
    report.add_argument("--model", default=settings.detection_model_path, help="Detector weights")

    return parser


async def run_report(args: argparse.Namespace) -> int:
    """Analyse a photo end to end. Returns a process exit code."""
    image_path = Path(args.image)
    if not image_path.is_file():
        print(f"ERROR: image not found: {image_path}")
        return 1

    # Model loading begins at startup and runs alongside location acquisition
    detection = DetectionService(YoloDetector(model_path=args.model))
    load_task = asyncio.create_task(detection.load())

    if args.lat is not None and args.lng is not None:
        provider = FixedPositionProvider(args.lat, args.lng)
    else:
        provider = NetworkPositionProvider()

    viewport = MapViewport() if args.map_path else None
    surface = MapSurface(args.map_path) if args.map_path else None

    async with NominatimResolver() as resolver, SubmissionClient(args.server) as client:
        session = ReportSession(
            acquirer=LocationAcquirer(provider),
            resolver=resolver,
            pipeline=IntakePipeline(detection),
            client=client,
            viewport=viewport,
            surface=surface,
        )
        try:
            print("Acquiring GPS...")
            fix = await session.start()
            if fix is None:
                print(f"GPS Blocked: {session.acquirer.last_error}")
                return 1
            print(f"  {fix.lat:.6f}, {fix.lng:.6f}")

            if await load_task == ModelState.FAILED:
                print("AI Model failed to load. Check your internet connection.")
                return 1

            print("Analyzing image with AI Vision Guard...")
            try:
                draft = await session.select_image(image_path.read_bytes())
            except (ImageDecodeError, InferenceError, ModelUnavailableError) as e:
                print(f"AI Analysis failed: {e}")
                return 1

            await session.wait_for_background()
            if session.address is not None:
                print(f"  Address: {session.address.text}")
            if surface is not None and surface.viewport_id:
                print(f"  Map saved to: {surface.path}")

            if draft is None:
                return 1

            if draft.outcome == DraftOutcome.INVALID:
                print(
                    "Invalid Image: non-civic or personal object detected "
                    f"({draft.rejected_label}). Please photograph a civic issue."
                )
                return 2

            if draft.outcome == DraftOutcome.DUPLICATE:
                print(f"This issue is already reported (report {draft.duplicate_of}).")
                if args.upvote:
                    report = await session.upvote_duplicate()
                    print(f"Upvoted: {report['upvotes']} upvotes")
                return 0

            print(f"Category: {draft.category.value}")
            print(f"AI Confidence: {draft.confidence}%")
            if draft.guidance is not None:
                print("Precautions & Actions:")
                for i, step in enumerate(draft.guidance.precautions, start=1):
                    print(f"  {i}. {step}")

            if not args.submit:
                print("Not submitted (use --submit).")
                return 0

            try:
                report = await session.submit(description=args.description)
            except SubmissionError as e:
                print(f"Failed to submit report: {e.message}")
                return 1
            print(f"Report submitted: {report['id']}")
            return 0
        finally:
            await session.close()
            if isinstance(provider, NetworkPositionProvider):
                await provider.aclose()
            if not load_task.done():
                load_task.cancel()


def main(argv: Optional[List[str]] = None) -> int:
    load_dotenv()
    args = build_parser().parse_args(argv)
    setup_logging()

    if args.command == "serve":
        import uvicorn
        uvicorn.run("civiclens.api.main:app", host=args.host, port=args.port, reload=args.reload)
        return 0

    return asyncio.run(run_report(args))


if __name__ == "__main__":
    sys.exit(main())
