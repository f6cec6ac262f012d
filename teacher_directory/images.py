# teacher_directory/images.py
"""
Server-side image pipeline: validate an upload, decode it, fit it to the
passport box and re-encode it as JPEG.
"""

import logging
import os
import tempfile
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional, Tuple

import cv2
import numpy as np

from .errors import InvalidMediaType, PayloadTooLarge

logger = logging.getLogger(__name__)

WHITE = (255, 255, 255)
OUTPUT_MIME_TYPE = "image/jpeg"


@dataclass
class ProcessedImage:
    data: bytes
    mime_type: str
    width: int
    height: int


def validate_upload(data: bytes, mime_type: Optional[str], max_bytes: int):
    """Reject uploads that are not images or exceed the size ceiling."""
    if not mime_type or not mime_type.startswith("image/"):
        raise InvalidMediaType("Invalid file type. Only images are allowed.")
    if len(data) > max_bytes:
        raise PayloadTooLarge(f"Image exceeds the {max_bytes // (1024 * 1024)} MiB upload limit.")


@contextmanager
def temporary_upload(data: bytes, suffix: str = ".upload", tmp_dir: Optional[str] = None) -> Iterator[str]:
    """Write ``data`` to a temp file and remove it when the block exits, however it exits."""
    fd, path = tempfile.mkstemp(suffix=suffix, dir=tmp_dir)
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        yield path
    finally:
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass


def decode_image(data: bytes, tmp_dir: Optional[str] = None) -> np.ndarray:
    with temporary_upload(data, tmp_dir=tmp_dir) as path:
        image_bgr = cv2.imread(path, cv2.IMREAD_COLOR)
    if image_bgr is None:
        logger.error("cv2.imread failed, upload is not a decodable image.")
        raise InvalidMediaType("Uploaded file could not be decoded as an image.")
    return image_bgr


def contain(image: np.ndarray, size: Tuple[int, int], background=WHITE) -> np.ndarray:
    """Scale to fit inside ``size`` without enlarging, then centre on a canvas of exactly ``size``."""
    target_w, target_h = size
    h, w = image.shape[:2]
    scale = min(target_w / w, target_h / h, 1.0)
    new_w = max(1, int(round(w * scale)))
    new_h = max(1, int(round(h * scale)))
    if (new_w, new_h) != (w, h):
        image = cv2.resize(image, (new_w, new_h), interpolation=cv2.INTER_AREA)

    canvas = np.full((target_h, target_w, 3), background, dtype=np.uint8)
    top = (target_h - new_h) // 2
    left = (target_w - new_w) // 2
    canvas[top:top + new_h, left:left + new_w] = image
    return canvas


def fill(image: np.ndarray, size: Tuple[int, int]) -> np.ndarray:
    """Stretch to exactly ``size``. Aspect ratio is not preserved."""
    h, w = image.shape[:2]
    interpolation = cv2.INTER_AREA if w * h > size[0] * size[1] else cv2.INTER_LINEAR
    return cv2.resize(image, size, interpolation=interpolation)


def encode_jpeg(image: np.ndarray, quality: int) -> bytes:
    ok, buffer = cv2.imencode(
        ".jpg",
        image,
        [int(cv2.IMWRITE_JPEG_QUALITY), quality, int(cv2.IMWRITE_JPEG_PROGRESSIVE), 1],
    )
    if not ok:
        raise RuntimeError("cv2.imencode failed to encode JPEG.")
    return buffer.tobytes()


def process_upload(
    data: bytes,
    mime_type: Optional[str],
    size: Tuple[int, int],
    fit: str = "contain",
    quality: int = 90,
    max_bytes: int = 20 * 1024 * 1024,
    tmp_dir: Optional[str] = None,
) -> ProcessedImage:
    """
    Run an uploaded image through the pipeline.

    Args:
        data: Raw uploaded bytes.
        mime_type: Content type declared by the client.
        size: Target box as (width, height).
        fit: "contain" (pad on white) or "fill" (stretch).
        quality: JPEG quality for the re-encode.
        max_bytes: Upload ceiling.
        tmp_dir: Directory for the scoped temp file (defaults to the system one).

    Returns:
        ProcessedImage with the final JPEG bytes and dimensions.
    """
    validate_upload(data, mime_type, max_bytes)
    image_bgr = decode_image(data, tmp_dir=tmp_dir)

    if fit == "contain":
        resized = contain(image_bgr, size)
    elif fit == "fill":
        resized = fill(image_bgr, size)
    else:
        raise ValueError(f"Unknown image fit: {fit!r}")

    encoded = encode_jpeg(resized, quality)
    height, width = resized.shape[:2]
    logger.info(f"Processed upload {image_bgr.shape[1]}x{image_bgr.shape[0]} -> {width}x{height} ({fit}).")
    return ProcessedImage(data=encoded, mime_type=OUTPUT_MIME_TYPE, width=width, height=height)
