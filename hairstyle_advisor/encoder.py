"""Conversion between raw image bytes and the base64 form sent to Gemini."""

import base64
import binascii
import io
import logging
from typing import Optional

from PIL import Image

from .errors import DecodeError
from .models import EncodedImage

logger = logging.getLogger(__name__)


def _sniff_media_type(data: bytes, context: str = "") -> str:
    """Open the bytes with Pillow and return the detected MIME type"""
    try:
        with Image.open(io.BytesIO(data)) as image:
            image_format = image.format
            size = image.size
            image.verify()
    except Exception as e:
        logger.error(f"DECODE-{context}: Image validation failed: {e}")
        raise DecodeError("Could not read the image file. Please try again.") from e

    media_type = Image.MIME.get(image_format or "")
    logger.info(f"DECODE-{context}: Valid image: {size}, {len(data)} bytes, {image_format}")
    if not media_type:
        raise DecodeError(f"Unsupported image format: {image_format}")
    return media_type


def encode_image(data: bytes, media_type: Optional[str] = None, context: str = "") -> EncodedImage:
    """
    Turn raw image bytes into an EncodedImage.

    The payload is the base64 of the original bytes, so decode_image gives
    back exactly what came in.

    Raises:
        DecodeError: empty input, unreadable image or non-image media type
    """
    if not data:
        raise DecodeError("The image file is empty.")
    if media_type and not media_type.lower().startswith("image/"):
        raise DecodeError(f"Not an image media type: {media_type}")

    detected = _sniff_media_type(data, context)
    content_type = media_type.lower() if media_type else detected

    payload = base64.b64encode(data).decode("utf-8")
    return EncodedImage(payload=payload, content_type=content_type)


def decode_image(image: EncodedImage) -> bytes:
    try:
        return base64.b64decode(image.payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Invalid base64 payload: {e}") from e


def encode_data_url(url: str, context: str = "") -> EncodedImage:
    """Encode a `data:<mime>;base64,<payload>` URL (as produced by browsers)"""
    header, sep, payload = url.partition(",")
    if not sep or not header.startswith("data:") or ";base64" not in header:
        raise DecodeError("Not a base64 data URL")

    media_type = header[len("data:"):].split(";")[0] or None
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as e:
        raise DecodeError(f"Invalid base64 payload: {e}") from e
    return encode_image(data, media_type, context)
