from dataclasses import dataclass
from typing import Optional

from icon_designer.core.image_handler import ImageSource
from icon_designer.core.models import IconSize, Layer, Position


@dataclass(frozen=True)
class ResolvedLayer:
    visible: bool
    position: Position
    scale: float
    image_source: Optional[ImageSource]


def _override(mapping: dict, size: IconSize, default):
    value = mapping.get(size)
    return default if value is None else value


def resolve(layer: Layer, size) -> ResolvedLayer:
    """
    Effective attributes of `layer` at `size`: a per-size override wins,
    otherwise the global value. Folder layers never resolve an image source.
    Pure; the layer is not touched.
    """
    key = IconSize.parse(size)
    if layer.kind.is_folder:
        image_source = None
    else:
        image_source = _override(layer.image_source_by_size, key, layer.image_source)
    return ResolvedLayer(
        visible=_override(layer.visibility_by_size, key, layer.visible),
        position=_override(layer.position_by_size, key, layer.position),
        scale=_override(layer.scale_by_size, key, layer.scale),
        image_source=image_source,
    )
