import logging
from dataclasses import dataclass, field
from typing import Iterable, Optional

from PIL import Image, ImageDraw

from icon_designer.core.assets import FolderAssets, get_folder_assets
from icon_designer.core.errors import DecodeError, RenderError
from icon_designer.core.image_handler import ImageDecoder, PillowDecoder
from icon_designer.core.models import (
    CANVAS_SPACE,
    DEFAULT_COLORS,
    Color,
    ColorKind,
    IconSize,
    Layer,
    LayerKind,
)
from icon_designer.core.resolution import ResolvedLayer, resolve
from icon_designer.utils.helpers import get_resample_by_name, hex_to_rgb

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderContext:
    """Everything a render needs besides the layers. Immutable, safe to share."""
    assets: FolderAssets
    decoder: ImageDecoder = field(default_factory=PillowDecoder)
    resample: str = "lanczos"


def default_context(asset_dir: str | None = None, resample: str = "lanczos") -> RenderContext:
    return RenderContext(assets=get_folder_assets(asset_dir), resample=resample)


@dataclass
class RenderReport:
    size: int
    skipped: list[tuple[LayerKind, str]] = field(default_factory=list)

    @property
    def clean(self) -> bool:
        return not self.skipped


# -------------------- Colour fill --------------------
def _gradient_mask(color: Color, width: int, height: int) -> Image.Image:
    # Pillow's 256px ramps resampled with an affine map; transform samples
    # at pixel centres and the extra 0.5 rounds to the nearest ramp entry.
    if color.kind is ColorKind.LINEAR:
        # fixed diagonal from (0, 0) to (width, height): row = 255 * t
        k = 255.0 / (width * width + height * height)
        data = (0, 0, 128, width * k, height * k, 0.5)
        return Image.linear_gradient("L").transform(
            (width, height), Image.Transform.AFFINE, data, Image.Resampling.NEAREST
        )
    # radial_gradient holds twice the distance from (128, 128), clipped at 255
    radius = min(width, height) / 2 or 1.0
    s = 127.5 / radius
    data = (s, 0, 128.5 - width / 2 * s, 0, s, 128.5 - height / 2 * s)
    return Image.radial_gradient("L").transform(
        (width, height), Image.Transform.AFFINE, data, Image.Resampling.NEAREST, fillcolor=255
    )


def color_fill_image(color: Color, size: tuple[int, int]) -> Image.Image:
    """RGB surface painted with `color` (solid or gradient) over `size`."""
    width, height = size
    start = Image.new("RGB", size, hex_to_rgb(color.primary))
    if not color.is_gradient:
        return start
    end = Image.new("RGB", size, hex_to_rgb(color.end))
    return Image.composite(end, start, _gradient_mask(color, width, height))


def apply_color_fill(image: Image.Image, color: Color) -> Image.Image:
    """
    Paint `color` through the image's alpha: RGB comes from the fill, alpha is
    the source's own channel, untouched. Nothing lands outside the silhouette.
    """
    src = image.convert("RGBA")
    fill = color_fill_image(color, src.size)
    r, g, b = fill.split()
    return Image.merge("RGBA", (r, g, b, src.getchannel("A")))


def apply_opacity(image: Image.Image, opacity: int) -> Image.Image:
    if opacity >= 100:
        return image
    factor = opacity / 100
    out = image.copy()
    out.putalpha(image.getchannel("A").point(lambda a: round(a * factor)))
    return out


# -------------------- Layer tiles --------------------
def folder_fallback_glyph(kind: LayerKind, size: int, color: Optional[Color]) -> Image.Image:
    """Flat folder shape used when no artwork could be obtained."""
    mask = Image.new("L", (size, size), 0)
    draw = ImageDraw.Draw(mask)
    if kind is LayerKind.BACK_FOLDER:
        draw.rectangle((size * 0.05, size * 0.2, size * 0.85, size * 0.85), fill=255)
        draw.rectangle((size * 0.05, size * 0.1, size * 0.35, size * 0.2), fill=255)
    else:
        draw.rectangle((size * 0.15, size * 0.15, size * 0.85, size * 0.75), fill=255)
        draw.rectangle((size * 0.15, size * 0.05, size * 0.4, size * 0.15), fill=255)
    silhouette = Image.new("RGBA", (size, size), (0, 0, 0, 0))
    silhouette.putalpha(mask)
    return apply_color_fill(silhouette, color or Color.solid(DEFAULT_COLORS[kind]))


def _folder_tile(layer: Layer, size: int, ctx: RenderContext) -> Image.Image:
    try:
        asset = ctx.assets.select(layer.kind, size)
    except RenderError:
        if not layer.use_color:
            raise
        logger.warning("No folder artwork for %s at %spx, drawing fallback shape", layer.kind.value, size)
        return folder_fallback_glyph(layer.kind, size, layer.color)
    if asset.size != (size, size):
        asset = asset.resize((size, size), get_resample_by_name(ctx.resample))
    if layer.use_color and layer.color is not None:
        return apply_color_fill(asset, layer.color)
    return asset


def _user_image_tile(layer: Layer, resolved: ResolvedLayer, size: int, ctx: RenderContext):
    if resolved.image_source is None:
        return None, (0, 0)
    try:
        img = ctx.decoder.decode(resolved.image_source)
    except DecodeError as exc:
        raise RenderError(f"Cannot decode image for {layer.kind.value}: {exc}") from exc
    scale_factor = size / CANVAS_SPACE
    draw_size = size * resolved.scale
    left = resolved.position.x * scale_factor - draw_size / 2
    top = resolved.position.y * scale_factor - draw_size / 2
    pixels = max(1, round(draw_size))
    tile = img.convert("RGBA").resize((pixels, pixels), get_resample_by_name(ctx.resample))
    if layer.use_color and layer.color is not None:
        tile = apply_color_fill(tile, layer.color)
    return tile, (round(left), round(top))


# -------------------- Render --------------------
def render_with_report(layers: Iterable[Layer], size, context: RenderContext | None = None):
    """
    Composite `layers` into a size x size RGBA image, bottom (lowest order)
    first. A layer whose source can't be used is skipped and noted in the
    report; the rest of the icon still renders.
    """
    size = int(IconSize.parse(size))
    ctx = context or default_context()
    report = RenderReport(size=size)
    canvas = Image.new("RGBA", (size, size), (0, 0, 0, 0))

    for layer in sorted(layers, key=lambda item: item.order):
        resolved = resolve(layer, size)
        if not resolved.visible:
            continue
        try:
            if layer.kind.is_folder:
                tile, origin = _folder_tile(layer, size, ctx), (0, 0)
            else:
                tile, origin = _user_image_tile(layer, resolved, size, ctx)
        except RenderError as exc:
            logger.warning("Skipping %s at %spx: %s", layer.kind.value, size, exc)
            report.skipped.append((layer.kind, str(exc)))
            continue
        if tile is None:
            continue

        # isolated full-canvas surface so offsets outside the canvas clip cleanly
        surface = Image.new("RGBA", (size, size), (0, 0, 0, 0))
        surface.paste(apply_opacity(tile, layer.opacity), origin)
        canvas = Image.alpha_composite(canvas, surface)

    return canvas, report


def render(layers: Iterable[Layer], size, context: RenderContext | None = None) -> Image.Image:
    canvas, _ = render_with_report(layers, size, context)
    return canvas
