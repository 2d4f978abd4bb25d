"""
Image decoding and quality checks for captured photos
"""

import base64
import logging
from typing import Any

import cv2
import numpy as np

from civiclens.core.errors import ImageDecodeError

logger = logging.getLogger(__name__)

_SIGNATURES = (
    (b"\xff\xd8\xff", "image/jpeg"),
    (b"\x89PNG\r\n\x1a\n", "image/png"),
    (b"GIF87a", "image/gif"),
    (b"GIF89a", "image/gif"),
    (b"BM", "image/bmp"),
)


def decode_image(image_data: bytes) -> Any:
    """
    Decode image bytes into a BGR array.

    Raises:
        ImageDecodeError: bytes are empty or not an image
    """
    if not image_data:
        raise ImageDecodeError("Empty image")

    nparr = np.frombuffer(image_data, np.uint8)
    image = cv2.imdecode(nparr, cv2.IMREAD_COLOR)
    if image is None:
        raise ImageDecodeError("Failed to load image")
    return image


def sniff_mime_type(image_data: bytes) -> str:
    """Guess the MIME type from the leading bytes."""
    if image_data[:4] == b"RIFF" and image_data[8:12] == b"WEBP":
        return "image/webp"
    for signature, mime in _SIGNATURES:
        if image_data.startswith(signature):
            return mime
    return "application/octet-stream"


def to_data_url(image_data: bytes) -> str:
    """Build a data: URL for previewing the captured image."""
    encoded = base64.b64encode(image_data).decode("ascii")
    return f"data:{sniff_mime_type(image_data)};base64,{encoded}"


def assess_quality(image: Any) -> str:
    """
    Assess image quality.

    Returns:
        One of "good", "dark", "blurry", "poor"
    """
    gray = cv2.cvtColor(image, cv2.COLOR_BGR2GRAY)

    if np.mean(gray) < 30:
        return "dark"

    # Laplacian variance as a blur measure
    if cv2.Laplacian(gray, cv2.CV_64F).var() < 100:
        return "blurry"

    h, w = image.shape[:2]
    if h < 200 or w < 200:
        return "poor"

    return "good"
