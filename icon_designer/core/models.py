from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Any, Optional

from icon_designer.core.errors import ValidationError
from icon_designer.core.image_handler import ImageSource, source_to_reference
from icon_designer.utils.validators import (
    validate_hex_color,
    validate_opacity,
    validate_scale,
    validate_size,
)

CANVAS_SPACE = 256


class IconSize(IntEnum):
    S16 = 16
    S20 = 20
    S24 = 24
    S32 = 32
    S40 = 40
    S64 = 64
    S256 = 256

    @classmethod
    def parse(cls, value) -> "IconSize":
        return cls(validate_size(value))


CANONICAL_SIZES: tuple[IconSize, ...] = tuple(IconSize)


class ColorKind(Enum):
    SOLID = "solid"
    LINEAR = "linear"
    RADIAL = "radial"


@dataclass(frozen=True)
class Color:
    """
    A fill used to tint a layer. Gradients run primary -> secondary
    (black when no secondary is given). angle_degrees is stored but not
    used when drawing; linear fills always run top-left to bottom-right.
    """
    kind: ColorKind = ColorKind.SOLID
    primary: str = "#FFFFFF"
    secondary: Optional[str] = None
    angle_degrees: Optional[float] = None

    def __post_init__(self):
        if not isinstance(self.kind, ColorKind):
            object.__setattr__(self, "kind", ColorKind(self.kind))
        validate_hex_color(self.primary)
        if self.secondary is not None:
            validate_hex_color(self.secondary)

    @classmethod
    def solid(cls, value: str) -> "Color":
        return cls(ColorKind.SOLID, value)

    @classmethod
    def linear(cls, start: str, end: str = "#000000", angle_degrees: float | None = None) -> "Color":
        return cls(ColorKind.LINEAR, start, end, angle_degrees)

    @classmethod
    def radial(cls, start: str, end: str = "#000000") -> "Color":
        return cls(ColorKind.RADIAL, start, end)

    @property
    def is_gradient(self) -> bool:
        return self.kind is not ColorKind.SOLID

    @property
    def end(self) -> str:
        return self.secondary or "#000000"

    def to_dict(self) -> dict:
        data: dict[str, Any] = {"type": self.kind.value, "value": self.primary}
        if self.is_gradient:
            gradient: dict[str, Any] = {"start": self.primary, "end": self.end}
            if self.angle_degrees is not None:
                gradient["direction"] = self.angle_degrees
            data["gradient"] = gradient
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Color":
        try:
            kind = ColorKind(data.get("type", "solid"))
        except ValueError:
            raise ValidationError(f"Unknown color type: {data.get('type')!r}") from None
        gradient = data.get("gradient") or {}
        if kind is ColorKind.SOLID or not gradient:
            primary = data.get("value", "#FFFFFF")
            return cls(kind, primary)
        return cls(
            kind,
            gradient.get("start", data.get("value", "#FFFFFF")),
            gradient.get("end"),
            gradient.get("direction"),
        )


@dataclass(frozen=True)
class Position:
    x: float = CANVAS_SPACE / 2
    y: float = CANVAS_SPACE / 2

    def to_dict(self) -> dict:
        return {"x": self.x, "y": self.y}

    @classmethod
    def from_dict(cls, data: dict) -> "Position":
        try:
            return cls(float(data["x"]), float(data["y"]))
        except (KeyError, TypeError, ValueError):
            raise ValidationError(f"Invalid position: {data!r}") from None


class LayerKind(Enum):
    BACK_FOLDER = "back-folder"
    FRONT_FOLDER = "front-folder"
    USER_IMAGE = "user-image"

    @property
    def is_folder(self) -> bool:
        return self is not LayerKind.USER_IMAGE


DEFAULT_COLORS = {
    LayerKind.BACK_FOLDER: "#EA580C",
    LayerKind.FRONT_FOLDER: "#F59E0B",
    LayerKind.USER_IMAGE: "#FFFFFF",
}

PATCHABLE_FIELDS = {
    "visible", "opacity", "use_color", "color", "image_source",
    "position", "scale",
}


def _size_keyed(mapping: dict | None, convert=None) -> dict:
    out = {}
    for key, value in (mapping or {}).items():
        out[IconSize.parse(key)] = convert(value) if convert else value
    return out


def _checked_position(value) -> Position:
    if not isinstance(value, Position):
        raise ValidationError(f"position override must be a Position, got {value!r}")
    return value


@dataclass
class Layer:
    id: str
    kind: LayerKind
    visible: bool = True
    opacity: int = 100
    use_color: bool = False
    color: Optional[Color] = None
    image_source: Optional[ImageSource] = None
    position: Position = field(default_factory=Position)
    scale: float = 1.0
    order: int = 0
    visibility_by_size: dict[IconSize, bool] = field(default_factory=dict)
    position_by_size: dict[IconSize, Position] = field(default_factory=dict)
    scale_by_size: dict[IconSize, float] = field(default_factory=dict)
    image_source_by_size: dict[IconSize, ImageSource] = field(default_factory=dict)

    def __post_init__(self):
        if not isinstance(self.kind, LayerKind):
            self.kind = LayerKind(self.kind)
        self.opacity = validate_opacity(self.opacity)
        self.scale = validate_scale(self.scale)
        if self.color is not None and not isinstance(self.color, Color):
            raise ValidationError("color must be a Color")
        if not isinstance(self.position, Position):
            raise ValidationError("position must be a Position")
        self.visibility_by_size = _size_keyed(self.visibility_by_size, bool)
        self.position_by_size = _size_keyed(self.position_by_size, _checked_position)
        self.scale_by_size = _size_keyed(self.scale_by_size, validate_scale)
        self.image_source_by_size = _size_keyed(self.image_source_by_size)
        if self.kind.is_folder and self.image_source_by_size:
            raise ValidationError(f"{self.kind.value} layers cannot carry per-size images")

    # -------------------- Editing --------------------
    def update(self, **patch):
        """
        Apply an attribute patch. Everything is validated before anything is
        assigned, so a rejected patch leaves the layer untouched.
        """
        unknown = set(patch) - PATCHABLE_FIELDS
        if unknown:
            raise ValidationError(f"Unknown layer attributes: {', '.join(sorted(unknown))}")
        checked = dict(patch)
        if "opacity" in checked:
            checked["opacity"] = validate_opacity(checked["opacity"])
        if "scale" in checked:
            checked["scale"] = validate_scale(checked["scale"])
        if "color" in checked and checked["color"] is not None and not isinstance(checked["color"], Color):
            raise ValidationError("color must be a Color")
        if "position" in checked and not isinstance(checked["position"], Position):
            raise ValidationError("position must be a Position")
        if "image_source" in checked and self.kind.is_folder and checked["image_source"] is not None:
            raise ValidationError(f"{self.kind.value} layers have no image source")
        for name, value in checked.items():
            setattr(self, name, value)

    def set_visible(self, visible: bool, size=None):
        if size is None:
            self.visible = bool(visible)
        else:
            self.visibility_by_size[IconSize.parse(size)] = bool(visible)

    def set_position(self, position: Position, size=None):
        position = _checked_position(position)
        if size is None:
            self.position = position
        else:
            self.position_by_size[IconSize.parse(size)] = position

    def set_scale(self, scale: float, size=None):
        value = validate_scale(scale)
        if size is None:
            self.scale = value
        else:
            self.scale_by_size[IconSize.parse(size)] = value

    def clear_overrides(self, size=None):
        maps = (self.visibility_by_size, self.position_by_size, self.scale_by_size)
        if size is None:
            for m in maps:
                m.clear()
            return
        key = IconSize.parse(size)
        for m in maps:
            m.pop(key, None)

    def set_size_sources(self, sources: dict):
        """Bulk import path: per-size images replace the single global image."""
        if self.kind.is_folder:
            raise ValidationError(f"{self.kind.value} layers cannot carry per-size images")
        self.image_source_by_size = _size_keyed(sources)
        self.image_source = None

    # -------------------- Persistence --------------------
    def to_dict(self) -> dict:
        data: dict[str, Any] = {
            "id": self.id,
            "type": self.kind.value,
            "visible": self.visible,
            "opacity": self.opacity,
            "useColor": self.use_color,
            "position": self.position.to_dict(),
            "scale": self.scale,
            "order": self.order,
        }
        if self.color is not None:
            data["color"] = self.color.to_dict()
        if self.image_source is not None:
            data["imageUrl"] = source_to_reference(self.image_source)
        if self.image_source_by_size:
            data["sizeSpecificImages"] = {
                str(int(k)): source_to_reference(v) for k, v in sorted(self.image_source_by_size.items())
            }
        if self.visibility_by_size:
            data["visibilityBySize"] = {str(int(k)): v for k, v in sorted(self.visibility_by_size.items())}
        if self.position_by_size:
            data["positionBySize"] = {str(int(k)): v.to_dict() for k, v in sorted(self.position_by_size.items())}
        if self.scale_by_size:
            data["scaleBySize"] = {str(int(k)): v for k, v in sorted(self.scale_by_size.items())}
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Layer":
        try:
            kind = LayerKind(data["type"])
        except (KeyError, ValueError):
            raise ValidationError(f"Invalid layer type: {data.get('type')!r}") from None
        color = data.get("color")
        return cls(
            id=str(data.get("id", kind.value)),
            kind=kind,
            visible=bool(data.get("visible", True)),
            opacity=data.get("opacity", 100),
            use_color=bool(data.get("useColor", False)),
            color=Color.from_dict(color) if color else None,
            image_source=data.get("imageUrl"),
            position=Position.from_dict(data.get("position", {"x": 128, "y": 128})),
            scale=data.get("scale", 1.0),
            order=int(data.get("order", 0)),
            visibility_by_size=data.get("visibilityBySize") or {},
            position_by_size={k: Position.from_dict(v) for k, v in (data.get("positionBySize") or {}).items()},
            scale_by_size=data.get("scaleBySize") or {},
            image_source_by_size=data.get("sizeSpecificImages") or {},
        )


def default_layer(kind: LayerKind, order: int) -> Layer:
    return Layer(
        id=kind.value,
        kind=kind,
        order=order,
        color=Color.solid(DEFAULT_COLORS[kind]),
    )


class LayerStack:
    """
    The canonical three-layer stack: one layer per kind, distinct paint orders.
    """

    def __init__(self, layers: list[Layer]):
        kinds = [layer.kind for layer in layers]
        if sorted(k.value for k in kinds) != sorted(k.value for k in LayerKind):
            raise ValidationError("A stack needs exactly one layer of each kind")
        orders = [layer.order for layer in layers]
        if len(set(orders)) != len(orders):
            raise ValidationError(f"Layer orders must be distinct, got {orders}")
        self._layers = {layer.kind: layer for layer in layers}

    @classmethod
    def default(cls) -> "LayerStack":
        return cls([
            default_layer(LayerKind.BACK_FOLDER, 0),
            default_layer(LayerKind.FRONT_FOLDER, 1),
            default_layer(LayerKind.USER_IMAGE, 2),
        ])

    def __iter__(self):
        return iter(self.layers)

    def __len__(self):
        return len(self._layers)

    @property
    def layers(self) -> list[Layer]:
        """Layers in paint order, bottom first."""
        return sorted(self._layers.values(), key=lambda layer: layer.order)

    def get(self, kind: LayerKind) -> Layer:
        return self._layers[LayerKind(kind)]

    @property
    def user_image(self) -> Layer:
        return self._layers[LayerKind.USER_IMAGE]

    def swap_order(self, dragged: LayerKind, target: LayerKind):
        """Drag-and-drop reorder: only the two layers' order values change."""
        a = self.get(dragged)
        b = self.get(target)
        a.order, b.order = b.order, a.order

    def apply_size_sources(self, sources: dict):
        self.user_image.set_size_sources(sources)

    def to_dict(self) -> dict:
        return {"layers": [layer.to_dict() for layer in self.layers]}

    @classmethod
    def from_dict(cls, data: dict) -> "LayerStack":
        raw = data.get("layers") if isinstance(data, dict) else data
        if not isinstance(raw, list):
            raise ValidationError("Project data has no layer list")
        return cls([Layer.from_dict(item) for item in raw])
