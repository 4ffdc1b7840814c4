"""
Image Guard

Two-phase checks for embedded data-URL images (book covers and author
photos). Phase one looks at the URL prefix and size only; phase two decodes
the payload with Pillow. A missing image always passes both phases.
"""

import asyncio
import base64
import binascii
import io
import logging
import re

from PIL import Image

# Configure logger for this module
logger = logging.getLogger(__name__)

MAX_IMAGE_SIZE_BYTES = 500 * 1024
MAX_AUTHOR_IMAGE_SIZE_BYTES = 200 * 1024

ALLOWED_MIME_TYPES = ("image/jpeg", "image/png", "image/webp")

# Pillow format names for each allowed MIME type
_PIL_FORMATS = {
    "image/jpeg": "JPEG",
    "image/png": "PNG",
    "image/webp": "WEBP",
}

_DATA_URL = re.compile(r"^data:(image/[a-zA-Z]+);base64,")


def image_mime_type(data_url: str) -> str | None:
    match = _DATA_URL.match(data_url or "")
    return match.group(1) if match else None


def image_rejection_reason(
    data_url: str | None, max_size_bytes: int = MAX_IMAGE_SIZE_BYTES
) -> str | None:
    """
    Return why an image fails the format/size check, or None if it passes.
    """
    if not data_url:
        return None

    if not isinstance(data_url, str) or not data_url.startswith("data:image/"):
        return "image is not a valid data URL"

    mime_type = image_mime_type(data_url)
    if mime_type not in ALLOWED_MIME_TYPES:
        return (
            f"image MIME type {mime_type or 'unknown'} is not allowed. "
            f"Allowed: {', '.join(ALLOWED_MIME_TYPES)}"
        )

    # base64 inflates by 4/3, so this approximates the decoded size
    size_bytes = len(data_url) * 0.75
    if size_bytes > max_size_bytes:
        return (
            f"image size ({round(size_bytes / 1024)}KB) exceeds limit of "
            f"{round(max_size_bytes / 1024)}KB"
        )

    return None


def validate_image(
    data_url: str | None, max_size_bytes: int = MAX_IMAGE_SIZE_BYTES
) -> bool:
    reason = image_rejection_reason(data_url, max_size_bytes)
    if reason:
        logger.warning(f"Validation Failed: {reason}")
        return False
    return True


def _decode_image(data_url: str) -> bool:
    mime_type = image_mime_type(data_url)
    if mime_type is None:
        return False

    try:
        raw = base64.b64decode(data_url.split(",", 1)[1], validate=True)
    except (binascii.Error, ValueError):
        return False

    try:
        # verify() leaves the image unusable, so decode again for load()
        with Image.open(io.BytesIO(raw)) as img:
            img.verify()
        with Image.open(io.BytesIO(raw)) as img:
            img.load()
            decoded_format = img.format
    except (OSError, SyntaxError, ValueError, Image.DecompressionBombError):
        return False

    return decoded_format == _PIL_FORMATS.get(mime_type)


async def validate_image_content(data_url: str | None) -> bool:
    """
    Decode the image payload to make sure it is a real image.

    Decoding runs in a worker thread. Resolves False for corrupt payloads
    and for bodies whose format disagrees with the declared MIME type.
    """
    if not data_url:
        return True

    decoded = await asyncio.to_thread(_decode_image, data_url)
    if not decoded:
        logger.warning("Validation Failed: image could not be decoded.")
    return decoded
