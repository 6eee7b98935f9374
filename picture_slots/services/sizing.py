"""Target-size and filename rules for compressed variants."""

from __future__ import annotations

import math
import re
from typing import Tuple

# Characters that are not allowed in file names on common filesystems.
_INVALID_FILENAME_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f]')

VARIANT_EXTENSION = ".png"


def _clamp(value: int, lower: int, upper: int) -> int:
    return max(lower, min(value, upper))


def scaled_size(src_w: int, src_h: int, max_long_side: int) -> Tuple[int, int]:
    """
    Compute the size of a variant whose long side is strictly below `max_long_side`.

    Images that already fit are returned unchanged; nothing is upscaled.
    Non-positive inputs are clamped into `[1, max_long_side - 1]`.
    """
    if src_w <= 0 or src_h <= 0:
        return (_clamp(src_w, 1, max_long_side - 1), _clamp(src_h, 1, max_long_side - 1))

    long_side = max(src_w, src_h)
    if long_side < max_long_side:
        return (src_w, src_h)

    # The half-pixel margin keeps the floored long side below the limit.
    scale = (max_long_side - 0.5) / long_side
    new_w = max(1, math.floor(src_w * scale))
    new_h = max(1, math.floor(src_h * scale))
    return (min(new_w, max_long_side - 1), min(new_h, max_long_side - 1))


def sanitize_filename(name: str) -> str:
    """Replace every character that is invalid in a file name with `_`."""
    return _INVALID_FILENAME_CHARS.sub("_", name)


def variant_filename(source_name: str, width: int, height: int, extension: str = VARIANT_EXTENSION) -> str:
    return f"{sanitize_filename(source_name)}_{width}x{height}{extension}"


def parse_size_group(size_group: str | None) -> Tuple[int, int] | None:
    """Parse a literal `WxH` size group; returns None for Mixed/Unknown/garbage."""
    if not size_group:
        return None
    parts = size_group.split("x")
    if len(parts) != 2:
        return None
    try:
        return (int(parts[0]), int(parts[1]))
    except ValueError:
        return None
