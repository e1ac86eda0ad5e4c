"""Type-aware coercion and equality for task field values."""

from __future__ import annotations

import math
from collections.abc import Mapping, Sequence
from datetime import date, datetime, time, timezone
from typing import Any, Literal, NamedTuple

FieldKind = Literal["number", "locations", "date", "text", "generic"]

COORDINATE_PRECISION = 6


class CoordinatesPair(NamedTuple):
    lat: float | None
    lon: float | None

    @property
    def is_valid(self) -> bool:
        return self.lat is not None and self.lon is not None


def round6(value: float) -> float:
    return round(float(value), COORDINATE_PRECISION)


def parse_number(value: Any) -> float | None:
    """Parse ints, floats and numeric-looking strings; anything else is None."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    if not math.isfinite(number):
        return None
    return number


def to_epoch_ms(value: Any) -> int | None:
    """Convert a date, datetime or ISO string to epoch milliseconds.

    Naive datetimes are taken as UTC, plain dates as midnight UTC.
    """
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            value = datetime.fromisoformat(text)
        except ValueError:
            return None
    if isinstance(value, datetime):
        moment = value
    elif isinstance(value, date):
        moment = datetime.combine(value, time.min)
    else:
        return None
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return int(round(moment.timestamp() * 1000))


def normalize_location(item: Any) -> dict[str, str]:
    if not isinstance(item, Mapping):
        item = {}

    def _text(key: str) -> str:
        raw = item.get(key)
        return "" if raw is None else str(raw)

    return {
        "name": _text("name"),
        "coordinates": _text("coordinates"),
        "address": _text("address"),
    }


def normalize_locations(value: Any) -> list[dict[str, str]]:
    """Normalize a location-point list; non-lists become an empty list."""
    if not isinstance(value, (list, tuple)):
        return []
    return [normalize_location(item) for item in value]


def parse_coordinates_pair(text: Any) -> CoordinatesPair:
    """Parse a combined "lat lon" string.

    Splits on whitespace and requires the first two tokens to be numbers;
    extra tokens are ignored. Malformed input gives an empty pair.
    """
    if not isinstance(text, str):
        return CoordinatesPair(None, None)
    tokens = text.split()
    if len(tokens) < 2:
        return CoordinatesPair(None, None)
    lat = parse_number(tokens[0])
    lon = parse_number(tokens[1])
    if lat is None or lon is None:
        return CoordinatesPair(None, None)
    return CoordinatesPair(round6(lat), round6(lon))


def format_coordinates(lat: float, lon: float) -> str:
    return f"{round6(lat)} {round6(lon)}"


def _is_empty(value: Any) -> bool:
    return value is None


def _generic_equal(a: Any, b: Any) -> bool:
    if isinstance(a, Mapping) and isinstance(b, Mapping):
        if set(a) != set(b):
            return False
        return all(_generic_equal(a[key], b[key]) for key in a)
    if (
        isinstance(a, Sequence)
        and isinstance(b, Sequence)
        and not isinstance(a, (str, bytes))
        and not isinstance(b, (str, bytes))
    ):
        if len(a) != len(b):
            return False
        return all(_generic_equal(x, y) for x, y in zip(a, b))
    if type(a) is bool or type(b) is bool:
        return type(a) is type(b) and a == b
    return a == b


def values_equal(kind: FieldKind, a: Any, b: Any) -> bool:
    """Compare two field values the way the audit trail should see them."""
    if kind == "locations":
        return normalize_locations(a) == normalize_locations(b)

    if _is_empty(a) or _is_empty(b):
        return _is_empty(a) and _is_empty(b)

    if kind == "number":
        left = parse_number(a)
        right = parse_number(b)
        if left is not None and right is not None:
            return round6(left) == round6(right)
        return _generic_equal(a, b)

    if kind == "date":
        left = to_epoch_ms(a)
        right = to_epoch_ms(b)
        if left is not None and right is not None:
            return left == right
        return _generic_equal(a, b)

    return _generic_equal(a, b)
