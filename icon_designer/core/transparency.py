from typing import Iterable

from PIL import Image, ImageDraw

from icon_designer.core.compositor import RenderContext, render
from icon_designer.core.models import CANONICAL_SIZES, Layer

PREVIEW_CELL = 72
PREVIEW_MARGIN = 8
LABEL_HEIGHT = 14


def create_checkerboard(size: tuple[int, int], square_size: int = 8) -> Image.Image:
    w, h = size
    bg = Image.new("RGB", (w, h), (220, 220, 220))
    draw = ImageDraw.Draw(bg)
    for y in range(0, h, square_size):
        for x in range(0, w, square_size):
            if ((x // square_size) + (y // square_size)) % 2:
                draw.rectangle((x, y, x + square_size - 1, y + square_size - 1), fill=(180, 180, 180))
    return bg


def build_preview_sheet(layers: Iterable[Layer], sizes: Iterable[int] = CANONICAL_SIZES,
                        context: RenderContext | None = None, cell: int = PREVIEW_CELL) -> Image.Image:
    """
    One row of previews, each size drawn 1:1 (large sizes shrunk to the cell)
    and centred over a checkerboard, labelled underneath.
    """
    layers = list(layers)
    sizes = [int(s) for s in sizes]
    width = PREVIEW_MARGIN + len(sizes) * (cell + PREVIEW_MARGIN)
    height = PREVIEW_MARGIN * 2 + cell + LABEL_HEIGHT
    sheet = Image.new("RGB", (width, height), (43, 43, 43))
    draw = ImageDraw.Draw(sheet)

    for i, size in enumerate(sizes):
        x = PREVIEW_MARGIN + i * (cell + PREVIEW_MARGIN)
        y = PREVIEW_MARGIN
        tile = create_checkerboard((cell, cell)).convert("RGBA")
        icon = render(layers, size, context)
        if size > cell:
            icon = icon.resize((cell, cell), Image.Resampling.LANCZOS)
        offset = ((cell - icon.width) // 2, (cell - icon.height) // 2)
        tile.alpha_composite(icon, offset)
        sheet.paste(tile.convert("RGB"), (x, y))
        draw.text((x, y + cell + 2), f"{size}px", fill=(232, 232, 232))
    return sheet
