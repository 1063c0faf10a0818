"""Lenient value coercion for loosely-typed backend payloads.

Every helper here is total: it returns a sensible default instead of raising,
so a mistyped field can never abort the processing of a message.
"""

import math
from datetime import UTC, datetime, tzinfo

# Formats the backend has been observed to send, tried before ISO-8601.
_TIMESTAMP_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M",
)

# Epoch values above this are milliseconds, not seconds.
_EPOCH_MILLIS_THRESHOLD = 100_000_000_000


def to_float(value: object, default: float = 0.0) -> float:
    if isinstance(value, bool):
        return float(value)
    if isinstance(value, int | float):
        number = float(value)
    elif isinstance(value, str):
        try:
            number = float(value.strip().replace(",", ""))
        except ValueError:
            return default
    else:
        return default
    if math.isnan(number) or math.isinf(number):
        return default
    return number


def to_int(value: object, default: int = 0) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    number = to_float(value, default=math.nan)
    if math.isnan(number):
        return default
    return int(number)


def to_str(value: object, default: str = "") -> str:
    """Coerce scalars to a stripped string; containers and ``None`` become ``default``."""
    if value is None or isinstance(value, dict | list | tuple | set):
        return default
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        # Phone numbers sometimes arrive as JSON numbers
        return str(int(value))
    return str(value).strip()


def to_optional_str(value: object) -> str | None:
    text = to_str(value)
    return text or None


def to_bool(value: object, default: bool = False) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, int | float):
        return value != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in ("true", "1", "yes", "y"):
            return True
        if lowered in ("false", "0", "no", "n", ""):
            return False
    return default


def parse_timestamp(value: object, default: datetime, tz: tzinfo = UTC) -> datetime:
    """Parse a free-form timestamp, falling back to ``default`` on any failure.

    Naive values are interpreted in ``tz``.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=tz)

    if isinstance(value, int | float) and not isinstance(value, bool):
        seconds = float(value)
        if seconds > _EPOCH_MILLIS_THRESHOLD:
            seconds /= 1000
        try:
            return datetime.fromtimestamp(seconds, tz)
        except (OverflowError, OSError, ValueError):
            return default

    if not isinstance(value, str) or not value.strip():
        return default

    text = value.strip()
    for fmt in _TIMESTAMP_FORMATS:
        try:
            return datetime.strptime(text, fmt).replace(tzinfo=tz)
        except ValueError:
            continue

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return default
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=tz)
