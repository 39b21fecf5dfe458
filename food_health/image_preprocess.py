"""Upload validation and resizing before the vision call.

- Rejects empty payloads and media types outside ALLOWED_CONTENT_TYPES
- With USE_BACKEND_RESIZE, decodes the image with Pillow, shrinks the longer
  side to BACKEND_MAX_SIDE_PX and re-encodes as JPEG
"""

import logging
import time
from io import BytesIO
from typing import Optional

from PIL import Image, UnidentifiedImageError

from food_health.config import ALLOWED_CONTENT_TYPES, BACKEND_MAX_SIDE_PX, USE_BACKEND_RESIZE
from food_health.errors import InputError
from food_health.schemas import RawImageInput
from food_health.utils import elapsed_ms

logger = logging.getLogger(__name__)


def resize_image(data: bytes, max_side: int = BACKEND_MAX_SIDE_PX) -> bytes:
    """Resize image so that the longer side <= max_side, keep aspect ratio, force JPEG."""
    try:
        with Image.open(BytesIO(data)) as img:
            input_size = img.size
            img.thumbnail((max_side, max_side))
            img = img.convert("RGB")  # PNG/WEBP -> JPEG
            out = BytesIO()
            img.save(out, format="JPEG")  # ALWAYS JPEG
    except (UnidentifiedImageError, Image.DecompressionBombError, OSError) as e:
        raise InputError(f"Image could not be decoded: {e}") from e

    logger.info("Resized image %s -> %s", input_size, img.size)
    return out.getvalue()


def prepare_image(
    data: Optional[bytes],
    content_type: Optional[str],
    resize: bool = USE_BACKEND_RESIZE,
    max_side: int = BACKEND_MAX_SIDE_PX,
) -> RawImageInput:
    if not data:
        raise InputError("Image payload is empty")
    if content_type not in ALLOWED_CONTENT_TYPES:
        raise InputError(
            f"Unsupported format {content_type!r} (use {', '.join(ALLOWED_CONTENT_TYPES)})"
        )

    if not resize:
        return RawImageInput(data=data, media_type=content_type)

    start = time.time()
    resized = resize_image(data, max_side)
    logger.info(
        "Preprocessed upload in %sms (%.1fkb -> %.1fkb)",
        elapsed_ms(start, time.time()),
        len(data) / 1024,
        len(resized) / 1024,
    )
    return RawImageInput(data=resized, media_type="image/jpeg")
