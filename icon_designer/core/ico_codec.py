"""
ICO container reader and writer.

Layout: a 6-byte header (reserved=0, type=1, count), `count` 16-byte
directory entries, then the image payloads. All integers little-endian;
a width/height byte of 0 means 256. Payloads are either PNG streams or
headerless 32-bit BMPs (BITMAPINFOHEADER + bottom-up BGRA rows).
"""
import logging
import struct
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterable, Mapping, Optional

from PIL import Image, ImageDraw

from icon_designer.core.errors import DecodeError, FormatError, ValidationError
from icon_designer.core.image_handler import (
    PNG_SIGNATURE,
    open_image_bytes,
    pil_to_png_bytes,
    png_bytes_to_data_uri,
)
from icon_designer.core.models import CANONICAL_SIZES, IconSize
from icon_designer.utils.helpers import get_resample_by_name
from icon_designer.utils.validators import validate_size, validate_sizes

logger = logging.getLogger(__name__)

HEADER = struct.Struct("<HHH")
DIR_ENTRY = struct.Struct("<BBBBHHII")
BITMAPINFOHEADER_SIZE = 40
MAX_IMAGES = 255
ICO_TYPE = 1

FALLBACK_BACKGROUND = "#4A90E2"
FALLBACK_FOREGROUND = "#FFFFFF"


class ImageFormat(Enum):
    PNG = "png"
    RAW_BITMAP = "bmp"


@dataclass(frozen=True)
class IcoImageDescriptor:
    width: int
    height: int
    raw_bytes: bytes
    format: ImageFormat

    @property
    def area(self) -> int:
        return self.width * self.height


def is_png(data: bytes) -> bool:
    return len(data) >= 4 and data[:4] == PNG_SIGNATURE[:4]


# -------------------- Reader --------------------
def parse(data: bytes) -> list[IcoImageDescriptor]:
    data = bytes(data)
    if len(data) < HEADER.size:
        raise FormatError("Invalid ICO file: too small")
    reserved, kind, count = HEADER.unpack_from(data, 0)
    if reserved != 0 or kind != ICO_TYPE:
        raise FormatError("Invalid ICO file: incorrect header")
    if count == 0 or count > MAX_IMAGES:
        raise FormatError(f"Invalid ICO file: invalid image count {count}")

    images = []
    for i in range(count):
        entry_offset = HEADER.size + i * DIR_ENTRY.size
        if entry_offset + DIR_ENTRY.size > len(data):
            raise FormatError(f"Invalid ICO file: truncated directory entry {i}")
        width, height, _colors, _reserved, _planes, _bpp, image_size, image_offset = DIR_ENTRY.unpack_from(
            data, entry_offset
        )
        if image_offset + image_size > len(data):
            raise FormatError(f"Invalid ICO file: image {i} data out of bounds")
        payload = data[image_offset:image_offset + image_size]
        images.append(IcoImageDescriptor(
            width=width or 256,
            height=height or 256,
            raw_bytes=payload,
            format=ImageFormat.PNG if is_png(payload) else ImageFormat.RAW_BITMAP,
        ))
    logger.debug("Parsed ICO with %d images: %s", len(images),
                 ", ".join(f"{im.width}x{im.height} {im.format.value}" for im in images))
    return images


def decode_raw_bitmap(raw: bytes, width: int, height: int) -> bytes:
    """
    Headerless ICO bitmap -> top-down RGBA bytes. Only 32-bit BGRA without
    row padding is supported; the AND mask after the pixel rows is ignored.
    """
    row_bytes = width * 4
    needed = BITMAPINFOHEADER_SIZE + row_bytes * height
    if len(raw) < needed:
        raise FormatError(f"Bitmap data too small for {width}x{height} image")
    bit_count = struct.unpack_from("<H", raw, 14)[0]
    if bit_count and bit_count != 32:
        raise FormatError(f"Unsupported bitmap depth: {bit_count} bpp")

    out = bytearray(row_bytes * height)
    for y in range(height):
        start = BITMAPINFOHEADER_SIZE + (height - 1 - y) * row_bytes
        row = raw[start:start + row_bytes]
        dst = y * row_bytes
        out[dst:dst + row_bytes:4] = row[2::4]
        out[dst + 1:dst + row_bytes:4] = row[1::4]
        out[dst + 2:dst + row_bytes:4] = row[0::4]
        out[dst + 3:dst + row_bytes:4] = row[3::4]
    return bytes(out)


def descriptor_to_image(desc: IcoImageDescriptor) -> Image.Image:
    """Pixels of one embedded image. Any failure surfaces as DecodeError."""
    if desc.format is ImageFormat.PNG:
        return open_image_bytes(desc.raw_bytes)
    try:
        rgba = decode_raw_bitmap(desc.raw_bytes, desc.width, desc.height)
    except FormatError as exc:
        raise DecodeError(str(exc)) from exc
    return Image.frombytes("RGBA", (desc.width, desc.height), rgba)


def best_match(images: Iterable[IcoImageDescriptor], target_size: int) -> Optional[IcoImageDescriptor]:
    """
    1. exact target x target
    2. otherwise the smallest (by area) image at least as large as the target
    3. otherwise the largest image available
    Ties keep the earlier directory entry.
    """
    images = list(images)
    if not images:
        return None
    for img in images:
        if img.width == target_size and img.height == target_size:
            return img
    larger = [img for img in images if img.width >= target_size and img.height >= target_size]
    if larger:
        return min(larger, key=lambda img: img.area)
    return max(images, key=lambda img: img.area)


# -------------------- Writer --------------------
def write_ico(images_by_size: Mapping[int, bytes]) -> bytes:
    """
    Package already-encoded PNG buffers into an ICO container, smallest size
    first. Pixels are never re-encoded.
    """
    if not images_by_size:
        raise ValidationError("No images to save.")
    normalized = {validate_size(size): data for size, data in images_by_size.items()}
    payloads = []
    for size in sorted(normalized):
        png = bytes(normalized[size])
        if not is_png(png):
            raise FormatError(f"Image for {size}px is not a PNG stream")
        payloads.append((size, png))

    header = HEADER.pack(0, ICO_TYPE, len(payloads))
    offset = HEADER.size + DIR_ENTRY.size * len(payloads)
    directory = []
    for size, png in payloads:
        dim = 0 if size == 256 else size
        directory.append(DIR_ENTRY.pack(dim, dim, 0, 0, 1, 32, len(png), offset))
        offset += len(png)
    return header + b"".join(directory) + b"".join(png for _, png in payloads)


# -------------------- Import --------------------
def fallback_image(size: int) -> Image.Image:
    img = Image.new("RGBA", (size, size), FALLBACK_BACKGROUND)
    draw = ImageDraw.Draw(img)
    draw.rectangle((size * 0.2, size * 0.2, size * 0.8 - 1, size * 0.8 - 1), fill=FALLBACK_FOREGROUND)
    return img


@dataclass
class ImportResult:
    sources: dict[IconSize, bytes] = field(default_factory=dict)
    fallbacks: dict[IconSize, str] = field(default_factory=dict)

    @property
    def complete(self) -> bool:
        return not self.fallbacks

    def by_size_key(self) -> dict[str, bytes]:
        return {str(int(size)): data for size, data in sorted(self.sources.items())}

    def as_data_uris(self) -> dict[str, str]:
        return {key: png_bytes_to_data_uri(data) for key, data in self.by_size_key().items()}


def import_ico(data: bytes, sizes: Iterable[int] = CANONICAL_SIZES, resample: str = "lanczos") -> ImportResult:
    """
    Turn an ICO file into one PNG per canonical size, ready for a user image
    layer's per-size sources. A broken container raises FormatError; a single
    undecodable entry is replaced by a placeholder glyph.
    """
    images = parse(data)
    result = ImportResult()
    resample_filter = get_resample_by_name(resample)
    for size in validate_sizes(sizes):
        key = IconSize(size)
        match = best_match(images, size)
        if match is None:
            continue
        try:
            img = descriptor_to_image(match)
            if img.size != (size, size):
                img = img.resize((size, size), resample_filter)
            result.sources[key] = pil_to_png_bytes(img)
        except DecodeError as exc:
            logger.warning("ICO entry %dx%d unusable for %spx, using placeholder: %s",
                           match.width, match.height, size, exc)
            result.sources[key] = pil_to_png_bytes(fallback_image(size))
            result.fallbacks[key] = str(exc)
    return result
