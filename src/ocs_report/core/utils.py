"""Shared parsing and caching utilities for OCS responses.

OCS payloads are inconsistently nested and loosely typed, so every extraction
path goes through these helpers instead of indexing raw dicts directly.
"""

import math
import re
from collections.abc import Hashable, Iterable
from datetime import datetime, timezone
from typing import Any, Generic, TypeVar

V = TypeVar("V")

NUMERIC_NOISE = re.compile(r"[^0-9.]")
NESTED_NUMBER_KEYS = ("value", "amount", "cost", "price")
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def finite_number(value: Any) -> float | int | None:
    """Return ``value`` if it is a real, finite number, otherwise None.

    Booleans are rejected even though they are ints in Python.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    if isinstance(value, float) and not math.isfinite(value):
        return None
    return value


def _parse_number_text(text: str) -> float | None:
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def coerce_numeric(value: Any) -> float | int | None:
    """Best-effort number from a loosely typed upstream value.

    Precedence:
    - a finite number is returned as is
    - a string is stripped of everything but digits and dots, then parsed
      (``"$ 12.50"`` -> 12.5); nothing left counts as 0 (``"N/A"`` -> 0)
    - a mapping yields its first present ``value``/``amount``/``cost``/``price``
      field, which must itself be a number or a plain numeric string; a
      blank string there also counts as 0

    Returns:
        The number, or None when nothing usable was found
    """
    number = finite_number(value)
    if number is not None:
        return number

    if isinstance(value, str):
        cleaned = NUMERIC_NOISE.sub("", value)
        return _parse_number_text(cleaned) if cleaned else 0

    if isinstance(value, dict):
        nested = first_present(value, NESTED_NUMBER_KEYS)
        number = finite_number(nested)
        if number is not None:
            return number
        if isinstance(nested, str):
            text = nested.strip()
            return _parse_number_text(text) if text else 0

    return None


def first_present(data: Any, keys: Iterable[str]) -> Any:
    """First value under ``keys`` that is not None (``a ?? b ?? c``)."""
    if not isinstance(data, dict):
        return None
    for key in keys:
        value = data.get(key)
        if value is not None:
            return value
    return None


def dig(data: Any, *path: str | int) -> Any:
    """Walk nested dicts/lists, returning None as soon as a step is missing."""
    current = data
    for step in path:
        if isinstance(step, int):
            if not isinstance(current, list) or not -len(current) <= step < len(current):
                return None
            current = current[step]
        elif isinstance(current, dict):
            current = current.get(step)
        else:
            return None
        if current is None:
            return None
    return current


def text_or_none(value: Any) -> str | None:
    """Identifiers and timestamps as text; numbers are stringified, blanks dropped."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, str):
        return value or None
    return None


def as_list(value: Any) -> list[Any]:
    """Upstream lists are sometimes null or absent; normalise to a list."""
    return value if isinstance(value, list) else []


def parse_datetime(date_str: str | None, formats: list[str] | None = None) -> datetime | None:
    """Parse datetime from the formats the OCS is known to emit.

    Args:
        date_str: Date string to parse
        formats: List of datetime formats to try. Defaults to common formats.

    Returns:
        Timezone-aware datetime (naive values are taken as UTC) or None if
        parsing fails
    """
    if not date_str or not isinstance(date_str, str):
        return None

    if formats is None:
        formats = [
            "%Y-%m-%dT%H:%M:%S.%fZ",
            "%Y-%m-%dT%H:%M:%SZ",
            "%Y-%m-%dT%H:%M:%S%z",
            "%Y-%m-%dT%H:%M:%S",
            "%Y-%m-%d %H:%M:%S",
            "%Y-%m-%d",
        ]

    parsed: datetime | None = None
    for fmt in formats:
        try:
            parsed = datetime.strptime(date_str, fmt)
            break
        except ValueError:
            continue

    if parsed is None:
        normalized = date_str.replace("Z", "+00:00") if date_str.endswith("Z") else date_str
        try:
            parsed = datetime.fromisoformat(normalized)
        except ValueError:
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def timestamp_of(value: Any) -> datetime:
    """Sort key for upstream timestamps; missing or unparsable sorts as epoch."""
    return parse_datetime(value) or EPOCH


def latest_by_date(entries: Any, field: str = "startDate") -> dict[str, Any] | None:
    """Pick the entry with the latest ``field`` timestamp.

    Ties keep list order, so the last of equally dated entries wins.
    """
    candidates = [entry for entry in as_list(entries) if isinstance(entry, dict)]
    if not candidates:
        return None
    return sorted(candidates, key=lambda entry: timestamp_of(entry.get(field)))[-1]


class KeyedCache(Generic[V]):
    """Process-lifetime cache keyed by identifier.

    Entries never expire; they are dropped only by ``invalidate``/``clear``
    (or a process restart). Suitable for near-static reference data.

    Usage:
        cache: KeyedCache[TemplateCost] = KeyedCache()

        if key not in cache:
            cache.set(key, await fetch(key))

        return cache.get(key)
    """

    def __init__(self) -> None:
        self._entries: dict[Hashable, V] = {}

    def __contains__(self, key: Hashable) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, key: Hashable) -> V | None:
        """Get cached value for key, or None."""
        return self._entries.get(key)

    def set(self, key: Hashable, value: V) -> None:
        """Store value for key."""
        self._entries[key] = value

    def invalidate(self, key: Hashable) -> None:
        """Drop a single entry if present."""
        self._entries.pop(key, None)

    def clear(self) -> None:
        """Drop every entry."""
        self._entries.clear()
