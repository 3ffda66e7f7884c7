"""Display formatting for table cells.

Numbers in a report are read at a glance, so every formatter trims noise:
no trailing zeros, the largest sensible unit, and a bounded number of
duration components. Undefined values (NaN) format as an empty string so a
cell with no data renders blank rather than "nan".
"""

import math

_BYTE_UNITS = ("B", "KB", "MB", "GB", "TB", "PB")
_DURATION_UNITS = (("d", 86400), ("h", 3600), ("m", 60), ("s", 1))


def format_float(v: float) -> str:
    """Format a float with at most two decimals, none above 10."""
    if math.isnan(v):
        return ""
    if abs(v) >= 10:
        return f"{v:.0f}"
    text = f"{v:.2f}".rstrip("0").rstrip(".")
    return "0" if text in ("", "-0") else text


def format_bytes(b: float) -> tuple[str, str]:
    """Return (value, unit) for a byte count, e.g. (1.5, "MB") for 1572864."""
    if math.isnan(b):
        return "", ""
    unit = 0
    while abs(b) >= 1024 and unit < len(_BYTE_UNITS) - 1:
        b /= 1024
        unit += 1
    return format_float(b), _BYTE_UNITS[unit]


def format_duration(seconds: float, precision: int = 1, sep: str = " ") -> str:
    """Format a duration with at most `precision` components.

    Examples:
        format_duration(3725)     → "1h"
        format_duration(3725, 2)  → "1h 2m"
        format_duration(0)        → "0s"
    """
    if math.isnan(seconds):
        return ""
    remaining = int(abs(seconds))
    parts: list[str] = []
    for suffix, size in _DURATION_UNITS:
        if len(parts) == precision:
            break
        n, remaining = divmod(remaining, size)
        if n or parts:
            parts.append(f"{n}{suffix}")
    # drop zero-valued tail components ("1h 0m" → "1h")
    while len(parts) > 1 and parts[-1][0] == "0":
        parts.pop()
    if not parts:
        return "0s"
    return ("-" if seconds < 0 else "") + sep.join(parts)


def format_duration_short(seconds: float, precision: int = 1) -> str:
    """Compact variant of format_duration without separators ("1h2m")."""
    return format_duration(seconds, precision, sep="")
