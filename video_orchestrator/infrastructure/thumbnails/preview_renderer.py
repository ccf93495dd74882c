"""Synthesized preview images keyed by video identity."""

import hashlib
import io
import math

from PIL import Image, ImageDraw, ImageFont

PALETTE: tuple[tuple[int, int, int], ...] = (
    (59, 130, 246),
    (16, 185, 129),
    (245, 158, 11),
    (239, 68, 68),
    (139, 92, 246),
    (236, 72, 153),
    (20, 184, 166),
    (249, 115, 22),
    (99, 102, 241),
    (132, 204, 22),
    (6, 182, 212),
    (168, 85, 247),
    (234, 179, 8),
    (244, 63, 94),
    (34, 197, 94),
)

_PATTERNS = ("stripes", "circles", "grid", "waves")


def _seed(video_id: str, title: str) -> int:
    digest = hashlib.sha256(f"{video_id}:{title}".encode()).digest()
    return int.from_bytes(digest[:8], "big")


def _shade(color: tuple[int, int, int], factor: float) -> tuple[int, int, int]:
    r, g, b = color
    return (int(r * factor), int(g * factor), int(b * factor))


def preview_style(video_id: str, title: str) -> tuple[tuple[int, int, int], str]:
    """Primary colour and pattern name for a video; stable across calls."""
    seed = _seed(video_id, title)
    return PALETTE[seed % len(PALETTE)], _PATTERNS[(seed // len(PALETTE)) % 4]


def render_preview(video_id: str, title: str, width: int, height: int) -> bytes:
    """Render a PNG preview: patterned background, play glyph and title.

    CPU bound; run it off the event loop.
    """
    primary, pattern = preview_style(video_id, title)
    accent = _shade(primary, 0.65)

    image = Image.new("RGB", (width, height), primary)
    draw = ImageDraw.Draw(image)

    step = max(width, height) // 12
    if pattern == "stripes":
        for offset in range(-height, width, step):
            draw.line(
                [(offset, height), (offset + height, 0)], fill=accent, width=step // 3
            )
    elif pattern == "circles":
        for x in range(0, width + step, step * 2):
            for y in range(0, height + step, step * 2):
                half = step // 2
                draw.ellipse([x - half, y - half, x + half, y + half], fill=accent)
    elif pattern == "grid":
        for x in range(0, width, step):
            draw.line([(x, 0), (x, height)], fill=accent, width=2)
        for y in range(0, height, step):
            draw.line([(0, y), (width, y)], fill=accent, width=2)
    else:
        for row in range(0, height + step, step):
            points = [
                (x, row + math.sin(x / step * math.pi) * step / 3)
                for x in range(0, width + 8, 8)
            ]
            draw.line(points, fill=accent, width=3)

    # Play glyph
    cx, cy, r = width // 2, height // 2, min(width, height) // 8
    draw.ellipse([cx - r, cy - r, cx + r, cy + r], fill=(255, 255, 255))
    draw.polygon(
        [(cx - r // 3, cy - r // 2), (cx - r // 3, cy + r // 2), (cx + r // 2, cy)],
        fill=primary,
    )

    caption = title.strip()[:60] or "Untitled video"
    font = ImageFont.load_default(size=max(16, height // 16))
    band_top = height - height // 6
    draw.rectangle([0, band_top, width, height], fill=_shade(primary, 0.4))
    draw.text(
        (width // 2, (band_top + height) // 2),
        caption,
        fill=(255, 255, 255),
        font=font,
        anchor="mm",
    )

    buffer = io.BytesIO()
    image.save(buffer, format="PNG", optimize=True)
    return buffer.getvalue()
