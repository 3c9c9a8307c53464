from __future__ import annotations
from typing import Mapping, Optional
import re

_HEX_RE = re.compile(r"^#([A-Fa-f0-9]{6}|[A-Fa-f0-9]{3})$")
_RGB_RE = re.compile(r"^rgba?\(\s*(\d+)\s*,\s*(\d+)\s*,\s*(\d+)\s*(,\s*[\d.]+\s*)?\)$")


def is_valid_color(color: str, named_colors: Mapping[str, str]) -> bool:
    """Hex (#RGB / #RRGGBB), rgb()/rgba(), or a name from the rule pack."""
    if _HEX_RE.match(color):
        return True
    if _RGB_RE.match(color):
        return True
    return color.lower() in named_colors


def to_rgb_hex(color: str, named_colors: Mapping[str, str]) -> Optional[str]:
    """Convert a validated color string to the RRGGBB form the host expects."""
    m = _HEX_RE.match(color)
    if m:
        digits = m.group(1)
        if len(digits) == 3:
            digits = "".join(ch * 2 for ch in digits)
        return digits.upper()
    m = _RGB_RE.match(color)
    if m:
        # alpha has no equivalent in run colors; dropped
        channels = [min(int(v), 255) for v in m.group(1, 2, 3)]
        return "".join(f"{c:02X}" for c in channels)
    named = named_colors.get(color.lower())
    if named:
        return named.lstrip("#").upper()
    return None
