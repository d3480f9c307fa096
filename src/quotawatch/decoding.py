"""
Tolerant decoding of upstream JSON values.

Usage APIs disagree on JSON types for the same logical field: a limit
may arrive as 1500, 1500.0, "1500" or even true. Every provider goes
through these helpers instead of repeating per-field fallbacks. Each
helper tries the exact type first, then numeric coercion, then string
parsing, and returns None when nothing matches.
"""

import math
from collections.abc import Mapping
from datetime import datetime, timezone
from typing import Any

from quotawatch.errors import DecodingError
from quotawatch.models import ProviderIdentifier


def decode_float(value: "Any") -> "float | None":
    if isinstance(value, float):
        return value if math.isfinite(value) else None
    # bool is an int subclass, so this also covers true/false as 1/0
    if isinstance(value, int):
        try:
            return float(value)
        except OverflowError:
            return None
    if isinstance(value, str):
        try:
            parsed = float(value.strip())
        except ValueError:
            return None
        return parsed if math.isfinite(parsed) else None
    return None


def decode_int(value: "Any") -> "int | None":
    if isinstance(value, int):
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        try:
            return int(text)
        except ValueError:
            pass
    number = decode_float(value)
    if number is None:
        return None
    return int(number)


def decode_str(value: "Any") -> "str | None":
    if isinstance(value, str):
        return value or None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def decode_bool(value: "Any") -> "bool | None":
    if isinstance(value, bool):
        return value
    if isinstance(value, str) and value.strip().lower() in ("true", "false"):
        return value.strip().lower() == "true"
    number = decode_float(value)
    if number is None:
        return None
    return number != 0


def section(mapping: "Any", key: "str") -> "dict[str, Any]":
    """
    returns a nested object, or an empty dict when it is missing or
    of the wrong shape.
    """
    if not isinstance(mapping, Mapping):
        return {}
    value = mapping.get(key)
    return dict(value) if isinstance(value, Mapping) else {}


def require_float(
    mapping: "Mapping[str, Any]",
    key: "str",
    provider: "ProviderIdentifier",
) -> "float":
    value = decode_float(mapping.get(key))
    if value is None:
        raise DecodingError(f"missing or invalid field {key!r}", provider)
    return value


def require_int(
    mapping: "Mapping[str, Any]",
    key: "str",
    provider: "ProviderIdentifier",
) -> "int":
    value = decode_int(mapping.get(key))
    if value is None:
        raise DecodingError(f"missing or invalid field {key!r}", provider)
    return value


def clamp_percent(value: "float") -> "float":
    return min(max(value, 0.0), 100.0)


def normalize_percent(value: "float") -> "float":
    """
    a reported "percent used" at or below 1.0 is a fraction, anything
    above is already a percentage. The result is clamped to [0, 100].
    """
    if value <= 1.0:
        return clamp_percent(value * 100.0)
    return clamp_percent(value)


def datetime_from_millis(value: "Any") -> "datetime | None":
    millis = decode_float(value)
    if not millis:
        return None
    try:
        return datetime.fromtimestamp(millis / 1000.0, tz=timezone.utc)
    except (OverflowError, OSError, ValueError):
        return None


def datetime_from_iso(value: "Any") -> "datetime | None":
    if not isinstance(value, str) or not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)
