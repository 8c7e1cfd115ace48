"""Value coercion helpers shared by the feedback engine.

Schema and item payloads arrive from services whose exact shape is not
guaranteed. These helpers turn loosely typed JSON values into the narrow
Python values the engine works with, returning None instead of raising.
"""

from __future__ import annotations

import json
import math
import re
from typing import Any, Dict, Optional


def is_record(value: Any) -> bool:
    return isinstance(value, dict)


def to_string_safe(value: Any) -> Optional[str]:
    """Return a trimmed non-empty string, or None for anything else."""
    if not isinstance(value, str):
        return None
    trimmed = value.strip()
    return trimmed or None


def first_string(*values: Any) -> Optional[str]:
    for v in values:
        s = to_string_safe(v)
        if s is not None:
            return s
    return None


def to_finite_number(value: Any) -> Optional[float]:
    """Coerce numbers and numeric strings to a finite float.

    Booleans are not numbers here even though Python treats them as ints.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        try:
            f = float(value)
        except OverflowError:
            # ints past the float range, e.g. a 400-digit JSON literal
            return None
        return f if math.isfinite(f) else None
    if isinstance(value, str):
        t = value.strip()
        if not t:
            return None
        try:
            f = float(t)
        except ValueError:
            return None
        return f if math.isfinite(f) else None
    return None


def clamp(n: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, n))


def ordered_bounds(lo: float, hi: float) -> tuple[float, float]:
    return (lo, hi) if lo <= hi else (hi, lo)


def to_json_object(value: Any) -> Optional[Dict[str, Any]]:
    """Accept a dict, or a JSON string encoding one."""
    if isinstance(value, dict):
        return value
    if isinstance(value, str):
        try:
            parsed = json.loads(value)
        except ValueError:
            return None
        if isinstance(parsed, dict):
            return parsed
    return None


_SEPARATORS = re.compile(r"[_-]+")
_CAMEL = re.compile(r"([a-z])([A-Z])")


def humanize_key(key: str) -> str:
    """Turn `what_went_well` / `whatWentWell` into `What Went Well`."""
    spaced = _CAMEL.sub(r"\1 \2", _SEPARATORS.sub(" ", key)).strip()
    if not spaced:
        return key
    return " ".join(w[:1].upper() + w[1:] for w in spaced.split())


def slugify(text: str) -> str:
    return re.sub(r"\s+", "-", text.strip().lower())


__all__ = [
    "is_record",
    "to_string_safe",
    "first_string",
    "to_finite_number",
    "clamp",
    "ordered_bounds",
    "to_json_object",
    "humanize_key",
    "slugify",
]
