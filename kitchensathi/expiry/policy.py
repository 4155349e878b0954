"""Validation of per-item notification policy values."""

from __future__ import annotations

MIN_DAYS_BEFORE = 0
MAX_DAYS_BEFORE = 30


def validate_days_before(values) -> list[int]:
    """Normalize a list of day-offsets.

    Values are clamped to [0, 30], de-duplicated and sorted ascending.

    Raises:
        ValueError: If a value is not an integer.
    """
    result: set[int] = set()
    for value in values:
        if isinstance(value, bool) or not isinstance(value, int):
            raise ValueError(f"Day-offset must be an integer: {value!r}")
        result.add(min(max(value, MIN_DAYS_BEFORE), MAX_DAYS_BEFORE))
    return sorted(result)
