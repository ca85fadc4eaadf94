import logging
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Iterable, Mapping

from PIL import Image, ImageDraw

from icon_designer.core.errors import RenderError
from icon_designer.core.models import CANONICAL_SIZES, LayerKind

logger = logging.getLogger(__name__)

FOLDER_KINDS = (LayerKind.BACK_FOLDER, LayerKind.FRONT_FOLDER)
ASSET_FILE_PATTERN = "folder-{part}-{size}.png"

# Windows 11 style manila palette
BACK_FILL = (232, 163, 23, 255)
BACK_EDGE = (214, 138, 10, 255)
FRONT_FILL = (255, 202, 40, 255)
FRONT_EDGE = (246, 181, 20, 255)

SUPERSAMPLE = 4


def closest_size(size: int, available: Iterable[int] = CANONICAL_SIZES) -> int:
    """
    Registered size with the smallest distance to `size`; on a tie the one
    listed first wins.
    """
    best = None
    for candidate in available:
        if best is None or abs(candidate - size) < abs(best - size):
            best = candidate
    if best is None:
        raise RenderError("No folder artwork sizes registered")
    return int(best)


def asset_filename(kind: LayerKind, size: int) -> str:
    part = "back" if kind is LayerKind.BACK_FOLDER else "front"
    return ASSET_FILE_PATTERN.format(part=part, size=size)


def draw_folder(kind: LayerKind, size: int) -> Image.Image:
    """
    Built-in folder silhouette. Drawn at 4x and downsampled so the small
    sizes keep smooth edges.
    """
    s = size * SUPERSAMPLE
    img = Image.new("RGBA", (s, s), (0, 0, 0, 0))
    draw = ImageDraw.Draw(img)
    radius = max(1, int(s * 0.04))
    edge = max(1, s // 64)
    if kind is LayerKind.BACK_FOLDER:
        draw.rounded_rectangle((s * 0.06, s * 0.14, s * 0.44, s * 0.30), radius=radius, fill=BACK_EDGE)
        draw.rounded_rectangle((s * 0.06, s * 0.20, s * 0.94, s * 0.84), radius=radius, fill=BACK_FILL,
                               outline=BACK_EDGE, width=edge)
    elif kind is LayerKind.FRONT_FOLDER:
        draw.rounded_rectangle((s * 0.06, s * 0.32, s * 0.94, s * 0.86), radius=radius, fill=FRONT_FILL,
                               outline=FRONT_EDGE, width=edge)
    else:
        raise RenderError(f"No folder artwork for {kind.value}")
    return img.resize((size, size), Image.Resampling.LANCZOS)


class FolderAssets:
    """
    Read-only folder artwork keyed by (kind, size). Built once and shared by
    every render; callers must not modify the returned images in place.
    """

    def __init__(self, images: Mapping[tuple[LayerKind, int], Image.Image]):
        self._images = MappingProxyType(dict(images))

    @classmethod
    def build(cls, asset_dir: str | Path | None = None, sizes: Iterable[int] = CANONICAL_SIZES) -> "FolderAssets":
        images = {}
        base = Path(asset_dir) if asset_dir else None
        for kind in FOLDER_KINDS:
            for size in sizes:
                size = int(size)
                path = base / asset_filename(kind, size) if base else None
                if path is not None and path.exists():
                    with Image.open(path) as im:
                        images[(kind, size)] = im.convert("RGBA")
                    logger.debug("Loaded folder artwork %s", path)
                else:
                    images[(kind, size)] = draw_folder(kind, size)
        return cls(images)

    def sizes(self, kind: LayerKind) -> list[int]:
        return [size for (k, size) in self._images if k is kind]

    def select(self, kind: LayerKind, size: int) -> Image.Image:
        available = self.sizes(kind)
        if not available:
            raise RenderError(f"No folder artwork loaded for {kind.value}")
        return self._images[(kind, closest_size(size, available))]


@lru_cache(maxsize=None)
def get_folder_assets(asset_dir: str | None = None) -> FolderAssets:
    return FolderAssets.build(asset_dir)
