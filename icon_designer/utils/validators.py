import math
import re

from icon_designer.core.errors import ValidationError
from icon_designer.utils.helpers import default_icon_sizes

HEX_COLOR_RE = re.compile(r"^#(?:[0-9a-fA-F]{3}|[0-9a-fA-F]{6})$")

OPACITY_RANGE = (0, 100)
SCALE_RANGE = (0.1, 2.0)


def validate_size(size) -> int:
    # accepts ints and size-string keys ("256") as used in project files
    if isinstance(size, int) and not isinstance(size, bool):
        si = int(size)
    elif isinstance(size, str) and size.strip().isdigit():
        si = int(size)
    else:
        raise ValidationError(f"Icon size must be an integer, got {size!r}")
    if si not in default_icon_sizes():
        raise ValidationError(f"Unsupported icon size: {size!r}")
    return si


def validate_sizes(sizes) -> list[int]:
    valid = []
    for s in sizes:
        si = validate_size(s)
        if si not in valid:
            valid.append(si)
    return sorted(valid)


def validate_opacity(value) -> int:
    if (isinstance(value, bool) or not isinstance(value, (int, float))
            or not math.isfinite(value) or value != int(value)):
        raise ValidationError(f"Opacity must be an integer, got {value!r}")
    lo, hi = OPACITY_RANGE
    if not lo <= value <= hi:
        raise ValidationError(f"Opacity {value} outside [{lo}, {hi}]")
    return int(value)


def validate_scale(value) -> float:
    if isinstance(value, bool) or not isinstance(value, (int, float)) or not math.isfinite(value):
        raise ValidationError(f"Scale must be a number, got {value!r}")
    lo, hi = SCALE_RANGE
    if not lo <= value <= hi:
        raise ValidationError(f"Scale {value} outside [{lo}, {hi}]")
    return float(value)


def validate_hex_color(value) -> str:
    if not isinstance(value, str) or not HEX_COLOR_RE.match(value):
        raise ValidationError(f"Invalid hex color: {value!r}")
    return value
