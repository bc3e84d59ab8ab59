"""Numeric coercion for loosely-typed upstream fields.

The analytics backend is not consistent about numeric types: a confidence
score may arrive as ``82``, ``"82"``, ``"82%"`` or ``"approx. 82.5"``. Every
numeric field goes through :func:`coerce_number`, which applies, in order:

1. a direct numeric cast,
2. extraction of the first numeric substring,
3. the documented per-field default.

The result is always a finite float, so applying the coercion twice gives the
same value as applying it once.
"""
from __future__ import annotations

import math
import re
from decimal import Decimal
from typing import Any, Dict, List, Mapping, Optional

_NUMERIC_SUBSTRING = re.compile(r"[-+]?\d+(?:\.\d+)?")

# Neutral default for an unparseable prediction confidence score
CONFIDENCE_DEFAULT = 70.0


def _direct(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float, Decimal)):
        result = float(value)
    elif isinstance(value, str):
        try:
            result = float(value.strip())
        except ValueError:
            return None
    else:
        return None
    return result if math.isfinite(result) else None


def _extract(value: Any) -> Optional[float]:
    if not isinstance(value, str):
        return None
    match = _NUMERIC_SUBSTRING.search(value)
    if not match:
        return None
    result = float(match.group(0))
    return result if math.isfinite(result) else None


def coerce_number(value: Any, default: float = 0.0) -> float:
    """Coerce ``value`` to a finite float, falling back to ``default``."""
    direct = _direct(value)
    if direct is not None:
        return direct
    extracted = _extract(value)
    if extracted is not None:
        return extracted
    return float(default)


def coerce_optional_number(value: Any) -> Optional[float]:
    """Like :func:`coerce_number` but keeps absence as ``None``."""
    if value is None:
        return None
    direct = _direct(value)
    if direct is not None:
        return direct
    return _extract(value)


def coerce_int(value: Any, default: int = 0) -> int:
    """Coerce to an int (truncating), falling back to ``default``."""
    return int(coerce_number(value, default))


def coerce_fields(attributes: Mapping[str, Any], defaults: Mapping[str, float]) -> Dict[str, Any]:
    """Return a copy of ``attributes`` with each field in ``defaults`` coerced.

    Fields absent from ``attributes`` are filled with their default so the
    shape is complete.
    """
    coerced = dict(attributes)
    for field, default in defaults.items():
        coerced[field] = coerce_number(attributes.get(field), default)
    return coerced


def ensure_list(value: Any) -> List[Any]:
    """Return ``value`` if it is a list, otherwise an empty list."""
    return list(value) if isinstance(value, (list, tuple)) else []


def ensure_dict(value: Any) -> Dict[str, Any]:
    return dict(value) if isinstance(value, Mapping) else {}


def coerce_number_map(value: Any, default: float = 0.0) -> Dict[str, float]:
    """Coerce every value of a mapping, dropping non-string keys."""
    return {
        str(key): coerce_number(item, default)
        for key, item in ensure_dict(value).items()
    }


def coerce_text(value: Any, default: str = "") -> str:
    if value is None:
        return default
    return value if isinstance(value, str) else str(value)
