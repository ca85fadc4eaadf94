import struct
from io import BytesIO

import pytest
from PIL import Image, ImageDraw

from icon_designer.core.models import LayerKind, LayerStack


def make_png(size: int | tuple[int, int], color=(255, 0, 0, 255)) -> bytes:
    if isinstance(size, int):
        size = (size, size)
    buf = BytesIO()
    Image.new("RGBA", size, color).save(buf, format="PNG")
    return buf.getvalue()


def make_raw_bitmap(width: int, height: int, pixels: dict | None = None, bit_count: int = 32,
                    fill=(0, 0, 0, 0)) -> bytes:
    """
    ICO-style headerless bitmap. `pixels` maps top-down (x, y) to RGBA.
    """
    pixels = pixels or {}
    header = struct.pack("<IiiHHIIiiII", 40, width, height * 2, 1, bit_count, 0, width * height * 4, 0, 0, 0, 0)
    rows = []
    for src_row in range(height):
        y = height - 1 - src_row
        row = bytearray()
        for x in range(width):
            r, g, b, a = pixels.get((x, y), fill)
            row += bytes((b, g, r, a))
        rows.append(bytes(row))
    return header + b"".join(rows)


def make_ico(entries: list[tuple[int, int, bytes]]) -> bytes:
    """Minimal ICO container around arbitrary payloads."""
    header = struct.pack("<HHH", 0, 1, len(entries))
    offset = 6 + 16 * len(entries)
    directory = b""
    for width, height, payload in entries:
        directory += struct.pack("<BBBBHHII", width % 256, height % 256, 0, 0, 1, 32, len(payload), offset)
        offset += len(payload)
    return header + directory + b"".join(p for _, _, p in entries)


@pytest.fixture
def png_factory():
    return make_png


@pytest.fixture
def bitmap_factory():
    return make_raw_bitmap


@pytest.fixture
def ico_factory():
    return make_ico


@pytest.fixture
def stack():
    return LayerStack.default()


@pytest.fixture
def image_only_stack():
    """Default stack with both folders hidden, so only the user image draws."""
    s = LayerStack.default()
    s.get(LayerKind.BACK_FOLDER).update(visible=False)
    s.get(LayerKind.FRONT_FOLDER).update(visible=False)
    return s


@pytest.fixture
def circle_image():
    img = Image.new("RGBA", (64, 64), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)
    draw.ellipse((8, 8, 55, 55), fill=(30, 200, 90, 255))
    # soft edge ring so partially transparent pixels are covered as well
    draw.ellipse((4, 4, 59, 59), outline=(30, 200, 90, 100), width=2)
    return img
