"""Lenient input parsing for query parameters and request bodies."""
from typing import Any, Mapping, Optional

from src.utils.errors import ValidationError

TRUE_VALUES = {"1", "true", "yes", "on"}


def normalize_currency_code(code: Any, default: str) -> str:
    """
    Normalize a currency code, falling back to ``default`` when absent.

    No ISO validation happens here; the analytics backend decides whether a
    pair is supported.
    """
    if code is None:
        return default
    code = str(code).strip().upper()
    return code or default


def parse_int(value: Any, default: Optional[int] = None) -> Optional[int]:
    """
    Parse an integer parameter; anything unparseable counts as absent.

    Args:
        value: Raw parameter (string, number or None)
        default: Value returned when ``value`` is missing or invalid

    Returns:
        Parsed integer or ``default``
    """
    if value is None or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value == value and value not in (float("inf"), float("-inf")) else default
    text = str(value).strip()
    if not text:
        return default
    try:
        return int(text)
    except ValueError:
        try:
            as_float = float(text)
        except ValueError:
            return default
        if as_float != as_float or as_float in (float("inf"), float("-inf")):
            return default
        return int(as_float)


def parse_float(value: Any, default: Optional[float] = None) -> Optional[float]:
    """Parse a float parameter; anything unparseable counts as absent."""
    if value is None or isinstance(value, bool):
        return default
    try:
        parsed = float(str(value).strip())
    except ValueError:
        return default
    if parsed != parsed or parsed in (float("inf"), float("-inf")):
        return default
    return parsed


def parse_bool(value: Any, default: bool = False) -> bool:
    """Parse a boolean flag such as ``refresh=true``."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in TRUE_VALUES


def require_fields(payload: Mapping[str, Any], fields) -> None:
    """Raise ValidationError listing every field that is missing or empty."""
    missing = [f for f in fields if payload.get(f) in (None, "")]
    if missing:
        raise ValidationError(f"Missing required parameters ({', '.join(missing)})")
