"""Summary statistics over Dexcom glucose readings."""

from __future__ import annotations

import numbers
from typing import Any, Iterable, List, Mapping

from glucose_proxy.schemas import GlucoseTrends


def reading_values(readings: Iterable[Mapping[str, Any]]) -> List[float]:
    """Numeric ``value`` fields, skipping readings Dexcom reports without one."""
    values: List[float] = []
    for reading in readings:
        value = reading.get("value")
        if isinstance(value, bool) or not isinstance(value, numbers.Real):
            continue
        values.append(value)
    return values


def summarize_readings(readings: Iterable[Mapping[str, Any]]) -> GlucoseTrends:
    """Average, highest, lowest and count of the reading values.

    An empty range yields ``count=0`` with the statistics set to ``None``.
    """
    values = reading_values(readings)
    if not values:
        return GlucoseTrends(average=None, highest=None, lowest=None, count=0)
    return GlucoseTrends(
        average=sum(values) / len(values),
        highest=max(values),
        lowest=min(values),
        count=len(values),
    )


__all__ = ["reading_values", "summarize_readings"]
