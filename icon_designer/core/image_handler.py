import base64
import binascii
from io import BytesIO
from pathlib import Path
from typing import Protocol, Union

from PIL import Image, ImageOps, UnidentifiedImageError

from icon_designer.core.errors import DecodeError
from icon_designer.utils.helpers import get_resample_by_name

SUPPORTED_INPUTS = (".png", ".jpg", ".jpeg", ".bmp", ".gif", ".tif", ".tiff", ".webp", ".ico")

PNG_DATA_URI_PREFIX = "data:image/png;base64,"
PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"

# bytes, a data: URI, a file path, or an already decoded image
ImageSource = Union[bytes, str, Path, Image.Image]


class ImageDecoder(Protocol):
    def decode(self, source: ImageSource) -> Image.Image: ...


class PillowDecoder:
    """
    Default decoder: every source kind ends up as a fresh RGBA image.
    Raises DecodeError for anything Pillow cannot read.
    """

    def decode(self, source: ImageSource) -> Image.Image:
        if source is None:
            raise DecodeError("No image source")
        if isinstance(source, Image.Image):
            return source.convert("RGBA")
        if isinstance(source, (bytes, bytearray, memoryview)):
            return open_image_bytes(bytes(source))
        if isinstance(source, str) and source.startswith("data:"):
            return open_image_bytes(data_uri_to_bytes(source))
        try:
            return load_image_with_alpha(source)
        except (OSError, ValueError) as exc:
            raise DecodeError(f"Cannot load image {source}: {exc}") from exc


def open_image_bytes(data: bytes) -> Image.Image:
    try:
        img = Image.open(BytesIO(data))
        img.load()
    except (UnidentifiedImageError, OSError, SyntaxError) as exc:
        raise DecodeError(f"Undecodable image data ({len(data)} bytes): {exc}") from exc
    return img.convert("RGBA")


def load_image_with_alpha(path: str | Path, max_edit_dimension: int | None = None) -> Image.Image:
    """
    Load an image and convert to RGBA. Optionally downscale so max(width, height) <= max_edit_dimension
    so very large sources don't slow down every render.
    """
    p = Path(path)
    if not p.exists():
        raise FileNotFoundError(f"File not found: {p}")
    if p.suffix.lower() not in SUPPORTED_INPUTS:
        raise ValueError(f"Unsupported format: {p.suffix}")
    img = Image.open(p)
    img = img.convert("RGBA")
    if max_edit_dimension and max(img.width, img.height) > max_edit_dimension:
        scale = max_edit_dimension / max(img.width, img.height)
        new_size = (max(1, int(img.width * scale)), max(1, int(img.height * scale)))
        img = img.resize(new_size, Image.Resampling.LANCZOS)
    return img


def prepare_image_for_size(base_image: Image.Image, size: int, resample_name: str, maintain_aspect: bool = True) -> Image.Image:
    """
    Always returns an RGBA image of exactly (size, size).
    If maintain_aspect True, the image is contained and centered on a transparent square.
    If False, the image is stretched to (size, size).
    """
    img = base_image.convert("RGBA")
    resample = get_resample_by_name(resample_name)
    if maintain_aspect:
        fitted = ImageOps.contain(img, (size, size), method=resample)
        out = Image.new("RGBA", (size, size), (0, 0, 0, 0))
        x = (size - fitted.width) // 2
        y = (size - fitted.height) // 2
        out.paste(fitted, (x, y), fitted)
        return out
    else:
        return img.resize((size, size), resample=resample)


def pil_to_png_bytes(im: Image.Image) -> bytes:
    buf = BytesIO()
    im.save(buf, format="PNG", optimize=True)
    return buf.getvalue()


def save_png(image: Image.Image, out_path: str | Path):
    p = Path(out_path)
    p.parent.mkdir(parents=True, exist_ok=True)
    image.save(p, format="PNG", optimize=True)


def png_bytes_to_data_uri(data: bytes) -> str:
    return PNG_DATA_URI_PREFIX + base64.b64encode(data).decode("ascii")


def data_uri_to_bytes(uri: str) -> bytes:
    header, sep, payload = uri.partition(",")
    if not sep or not header.startswith("data:"):
        raise DecodeError("Malformed data URI")
    if not header.endswith(";base64"):
        raise DecodeError("Only base64 data URIs are supported")
    try:
        return base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise DecodeError(f"Malformed base64 payload: {exc}") from exc


def source_to_reference(source: ImageSource) -> str:
    """
    JSON-safe form of an image source: raw bytes and images become PNG data URIs,
    paths become strings.
    """
    if isinstance(source, Image.Image):
        return png_bytes_to_data_uri(pil_to_png_bytes(source))
    if isinstance(source, (bytes, bytearray, memoryview)):
        data = bytes(source)
        if not data.startswith(PNG_SIGNATURE):
            data = pil_to_png_bytes(open_image_bytes(data))
        return png_bytes_to_data_uri(data)
    return str(source)
