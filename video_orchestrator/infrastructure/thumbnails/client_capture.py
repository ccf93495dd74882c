"""Validation of frame captures sent by the uploading client."""

import base64
import binascii
import io
import re
from dataclasses import dataclass

from PIL import Image, UnidentifiedImageError

_DATA_URL = re.compile(
    r"^data:image/(?P<subtype>png|jpeg|jpg|webp);base64,(?P<data>.+)$", re.DOTALL
)

_FORMATS = {
    "PNG": ("image/png", "png"),
    "JPEG": ("image/jpeg", "jpg"),
    "WEBP": ("image/webp", "webp"),
}


class InvalidCaptureError(ValueError):
    """Raised when a client capture is not a decodable image."""


@dataclass
class DecodedCapture:
    """A verified client frame ready to store."""

    data: bytes
    content_type: str
    extension: str
    width: int
    height: int


def decode_capture(data_url: str, max_bytes: int) -> DecodedCapture:
    """Decode and verify a ``data:image/...;base64,`` frame capture.

    Raises:
        InvalidCaptureError: If the payload is malformed, too large or not
            an image Pillow can identify.
    """
    match = _DATA_URL.match(data_url.strip())
    if match is None:
        raise InvalidCaptureError("not a base64 image data URL")

    # base64 inflates by 4/3; reject oversized payloads before decoding
    if len(match["data"]) * 3 // 4 > max_bytes:
        raise InvalidCaptureError(f"capture exceeds {max_bytes} bytes")

    try:
        data = base64.b64decode(match["data"], validate=True)
    except (binascii.Error, ValueError) as e:
        raise InvalidCaptureError(f"invalid base64: {e}") from e

    try:
        with Image.open(io.BytesIO(data)) as image:
            image_format = image.format or ""
            width, height = image.size
            image.verify()
    except (UnidentifiedImageError, OSError, SyntaxError) as e:
        raise InvalidCaptureError(f"undecodable image: {e}") from e

    if image_format not in _FORMATS:
        raise InvalidCaptureError(f"unsupported image format {image_format!r}")
    if width == 0 or height == 0:
        raise InvalidCaptureError("empty image")

    content_type, extension = _FORMATS[image_format]
    return DecodedCapture(
        data=data,
        content_type=content_type,
        extension=extension,
        width=width,
        height=height,
    )
