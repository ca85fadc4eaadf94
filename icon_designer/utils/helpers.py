from PIL import Image


def default_icon_sizes() -> list[int]:
    return [16, 20, 24, 32, 40, 64, 256]


def get_resample_by_name(name: str):
    lname = (name or "").lower()
    if lname == "nearest":
        return Image.Resampling.NEAREST
    elif lname == "bilinear":
        return Image.Resampling.BILINEAR
    elif lname == "bicubic":
        return Image.Resampling.BICUBIC
    else:
        return Image.Resampling.LANCZOS


def human_readable_size(bytes_count: int) -> str:
    units = ["B", "KB", "MB", "GB"]
    i = 0
    v = float(bytes_count)
    while v >= 1024 and i < len(units) - 1:
        v /= 1024.0
        i += 1
    return f"{v:.2f} {units[i]}"


def hex_to_rgb(value: str) -> tuple[int, int, int]:
    """
    '#RRGGBB' or '#RGB' -> (r, g, b). Callers validate the string first.
    """
    digits = value.lstrip("#")
    if len(digits) == 3:
        digits = "".join(ch * 2 for ch in digits)
    return (int(digits[0:2], 16), int(digits[2:4], 16), int(digits[4:6], 16))


def parse_sizes_list(s: str) -> list[int]:
    """
    Split '16,32;256' style input into ints. Non-numeric tokens are dropped;
    range checks are left to validators.validate_sizes.
    """
    if not s:
        return []
    out = []
    for token in s.replace(";", ",").split(","):
        token = token.strip()
        if not token:
            continue
        if token.isdigit():
            out.append(int(token))
    return out
