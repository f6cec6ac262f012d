# teacher_directory/storage.py

import logging
import os
import uuid
from typing import Optional

from . import models
from .images import ProcessedImage

logger = logging.getLogger(__name__)


def build_image_row(processed: ProcessedImage, mode: str, images_dir: str) -> models.Image:
    """Build an unsaved Image row, writing the bytes to disk first in filesystem mode."""
    image = models.Image(
        mime_type=processed.mime_type,
        width=processed.width,
        height=processed.height,
    )
    if mode == "filesystem":
        image.path = save_image_file(images_dir, processed.data)
    elif mode == "database":
        image.data = processed.data
    else:
        raise ValueError(f"Unknown image storage mode: {mode!r}")
    return image


def save_image_file(images_dir: str, data: bytes) -> str:
    os.makedirs(images_dir, exist_ok=True)
    path = os.path.join(images_dir, f"{uuid.uuid4().hex}-passport.jpg")
    with open(path, "wb") as f:
        f.write(data)
    return path


def remove_image_file(path: Optional[str]):
    """Best-effort removal; a missing file is not an error."""
    if not path:
        return
    try:
        os.unlink(path)
    except FileNotFoundError:
        pass
    except OSError as e:
        logger.warning(f"Could not delete image file {path}: {e}")


def read_image_bytes(image: models.Image) -> bytes:
    if image.data is not None:
        return image.data
    if image.path:
        with open(image.path, "rb") as f:
            return f.read()
    raise FileNotFoundError(f"Image {image.id} has neither inline data nor a file path.")
