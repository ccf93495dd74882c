"""Best-effort media metadata for uploads the provider has not analysed yet.

Nothing here inspects the file: estimates are derived from the declared
size alone and are always stored with ``estimated`` provenance.
"""

from math import gcd

from video_orchestrator.domain.value_objects.media_metadata import MediaMetadata

_MB = 1024 * 1024

# (exclusive upper size bound, width, height)
_RESOLUTION_TIERS: tuple[tuple[int, int, int], ...] = (
    (50 * _MB, 854, 480),
    (100 * _MB, 1280, 720),
)
_LARGEST_RESOLUTION = (1920, 1080)

DEFAULT_ASPECT_RATIO = "16:9"
AUTHORITATIVE_BASE_HEIGHT = 1080

# WebM usually carries VP8/VP9, which needs fewer bits for the same picture
CODEC_EFFICIENCY: dict[str, float] = {"video/webm": 0.75}


def estimate_bitrate(width: int, height: int) -> int:
    """Typical delivery bitrate in bits per second for a frame size."""
    pixels = width * height
    if pixels >= 3840 * 2160:
        return 15_000_000
    if pixels >= 1920 * 1080:
        return 5_000_000
    if pixels >= 1280 * 720:
        return 2_500_000
    if pixels >= 854 * 480:
        return 1_000_000
    return 500_000


def estimate_resolution(size_bytes: int) -> tuple[int, int]:
    """Guess frame dimensions from the file size."""
    for bound, width, height in _RESOLUTION_TIERS:
        if size_bytes < bound:
            return width, height
    return _LARGEST_RESOLUTION


def estimate_metadata(size_bytes: int, mime_type: str) -> MediaMetadata:
    """Plausible duration, resolution and bitrate for an unprocessed upload."""
    width, height = estimate_resolution(size_bytes)
    bitrate = int(
        estimate_bitrate(width, height) * CODEC_EFFICIENCY.get(mime_type.lower(), 1.0)
    )
    return MediaMetadata(
        duration_seconds=round(size_bytes * 8 / bitrate, 1),
        width=width,
        height=height,
        aspect_ratio=DEFAULT_ASPECT_RATIO,
        bitrate=bitrate,
    )


def dimensions_from_aspect_ratio(
    aspect_ratio: str, base_height: int = AUTHORITATIVE_BASE_HEIGHT
) -> tuple[int, int] | None:
    """Frame size for a ``W:H`` ratio at ``base_height``; None if unparsable."""
    try:
        w, h = (float(part) for part in aspect_ratio.split(":", 1))
    except ValueError:
        return None
    if w <= 0 or h <= 0:
        return None
    return round(base_height * w / h), base_height


def aspect_ratio_of(width: int, height: int) -> str:
    """Reduce a frame size to a ``W:H`` ratio string."""
    if width <= 0 or height <= 0:
        return DEFAULT_ASPECT_RATIO
    divisor = gcd(width, height)
    return f"{width // divisor}:{height // divisor}"
