import logging
import re
from io import BytesIO
from typing import Iterable

from PIL import Image

from icon_designer.core.errors import DecodeError, FormatError
from icon_designer.core.ico_codec import ImportResult
from icon_designer.core.image_handler import pil_to_png_bytes, prepare_image_for_size
from icon_designer.core.models import CANONICAL_SIZES, IconSize
from icon_designer.utils.validators import validate_sizes

logger = logging.getLogger(__name__)

UNSAFE_PATTERNS = [
    re.compile(r"<script", re.IGNORECASE),
    re.compile(r"on\w+\s*=", re.IGNORECASE),
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"<object", re.IGNORECASE),
    re.compile(r"<embed", re.IGNORECASE),
    re.compile(r"<iframe", re.IGNORECASE),
]


def prepare_svg(data: bytes | str) -> str:
    """
    Validate SVG markup and default unstyled artwork to white.
    """
    text = data.decode("utf-8", errors="replace") if isinstance(data, (bytes, bytearray)) else str(data)
    if not text.strip():
        raise FormatError("Invalid SVG: empty document")
    if "<svg" not in text:
        raise FormatError("Invalid SVG file: no SVG element found")
    for pattern in UNSAFE_PATTERNS:
        if pattern.search(text):
            raise FormatError("SVG contains potentially unsafe content")
    if "fill=" not in text and "style=" not in text:
        text = re.sub(r"<svg([^>]*)>", r'<svg\1 fill="white">', text, count=1)
    return text


def rasterize_svg(svg_text: str, size: int) -> Image.Image:
    import cairosvg

    png = cairosvg.svg2png(bytestring=svg_text.encode("utf-8"), output_width=size, output_height=size)
    return Image.open(BytesIO(png)).convert("RGBA")


def import_svg(data: bytes | str, sizes: Iterable[int] = CANONICAL_SIZES, resample: str = "lanczos") -> ImportResult:
    """
    Render SVG artwork once per size into transparent squares. Sizes that fail
    are recorded in `fallbacks` and left out; if none succeed, DecodeError.
    """
    svg_text = prepare_svg(data)
    result = ImportResult()
    for size in validate_sizes(sizes):
        key = IconSize(size)
        try:
            img = rasterize_svg(svg_text, size)
        except (ValueError, OSError, SyntaxError) as exc:
            logger.warning("Failed to render SVG at %spx: %s", size, exc)
            result.fallbacks[key] = str(exc)
            continue
        result.sources[key] = pil_to_png_bytes(prepare_image_for_size(img, size, resample))
    if not result.sources:
        raise DecodeError("Failed to process SVG: no sizes could be generated")
    return result
