"""Colour encodings.

Shift types persist colours as a packed ``0xRRGGBB`` integer, overrides as
four float channels in ``[0, 1]``. Conversions round instead of truncating,
so ``int -> floats -> int`` always gives back the same value. Clients may
also send ``#RRGGBB`` strings.
"""

import re
from typing import Any, Optional, Tuple

from pydantic import BaseModel, Field

_HEX_RE = re.compile(r"^#?([0-9a-fA-F]{6})$")


class RGBAColor(BaseModel):
    red: float = Field(ge=0.0, le=1.0)
    green: float = Field(ge=0.0, le=1.0)
    blue: float = Field(ge=0.0, le=1.0)
    alpha: float = Field(default=1.0, ge=0.0, le=1.0)


def _clamp_channel(value: float) -> float:
    return max(0.0, min(1.0, float(value)))


def pack_rgb(red: int, green: int, blue: int) -> int:
    for channel in (red, green, blue):
        if not 0 <= channel <= 255:
            raise ValueError(f"Colour channel out of range: {channel}")
    return (red << 16) | (green << 8) | blue


def unpack_rgb(value: int) -> Tuple[int, int, int]:
    return (value >> 16) & 0xFF, (value >> 8) & 0xFF, value & 0xFF


def int_to_rgba(value: int, alpha: float = 1.0) -> RGBAColor:
    red, green, blue = unpack_rgb(value)
    return RGBAColor(
        red=red / 255.0,
        green=green / 255.0,
        blue=blue / 255.0,
        alpha=_clamp_channel(alpha),
    )


def rgba_to_int(color: RGBAColor) -> int:
    return pack_rgb(
        round(_clamp_channel(color.red) * 255),
        round(_clamp_channel(color.green) * 255),
        round(_clamp_channel(color.blue) * 255),
    )


def hex_to_int(value: Optional[str]) -> Optional[int]:
    if value is None:
        return None
    match = _HEX_RE.match(value.strip())
    if not match:
        return None
    return int(match.group(1), 16)


def coerce_packed(value: Any) -> Any:
    """Turn a ``#RRGGBB`` string into a packed int; other values pass through."""
    if isinstance(value, str):
        packed = hex_to_int(value)
        if packed is None:
            raise ValueError(f"Invalid colour {value!r}; expected #RRGGBB.")
        return packed
    return value


def coerce_rgba(value: Any) -> Any:
    """Accept ``#RRGGBB`` or a packed int wherever RGBA channels are expected."""
    if isinstance(value, bool):
        return value
    if isinstance(value, (str, int)):
        return int_to_rgba(coerce_packed(value))
    return value
