"""
Chart rendering for glucose readings.

Uses matplotlib's object-oriented ``Figure`` API with the Agg canvas so charts
can be produced from request handlers without touching pyplot's global state.
"""

from __future__ import annotations

from datetime import datetime
from io import BytesIO
from typing import Any, Iterable, List, Mapping, Optional, Tuple

import matplotlib

matplotlib.use("Agg")

import matplotlib.dates as mdates  # noqa: E402
from matplotlib.figure import Figure  # noqa: E402

from glucose_proxy.services.trends import reading_values  # noqa: E402


def _parse_timestamp(raw: Optional[str]) -> Optional[datetime]:
    if not raw:
        return None
    try:
        return datetime.fromisoformat(raw.replace("Z", "+00:00"))
    except ValueError:
        return None


def chart_points(readings: Iterable[Mapping[str, Any]]) -> Tuple[List[datetime], List[float]]:
    """Pair each reading's ``systemTime`` with its value, ordered by time."""
    points = []
    for reading in readings:
        timestamp = _parse_timestamp(reading.get("systemTime"))
        values = reading_values([reading])
        if timestamp is None or not values:
            continue
        points.append((timestamp, values[0]))
    points.sort(key=lambda point: point[0])
    return [point[0] for point in points], [point[1] for point in points]


class ChartRenderer:
    """Render glucose readings as a PNG line chart."""

    def __init__(
        self,
        *,
        width_px: int = 800,
        height_px: int = 400,
        dpi: int = 100,
        line_color: str = "#4bc0c0",
        label: str = "Glucose Readings",
    ) -> None:
        self._size = (width_px / dpi, height_px / dpi)
        self._dpi = dpi
        self._color = line_color
        self._label = label

    def render(self, readings: Iterable[Mapping[str, Any]]) -> bytes:
        times, values = chart_points(readings)

        fig = Figure(figsize=self._size, dpi=self._dpi)
        ax = fig.subplots()
        if times:
            ax.plot(times, values, color=self._color, label=self._label)
            ax.xaxis.set_major_formatter(mdates.DateFormatter("%H:%M"))
            ax.legend(loc="upper left")
            fig.autofmt_xdate()
        else:
            ax.text(
                0.5,
                0.5,
                "No readings",
                ha="center",
                va="center",
                transform=ax.transAxes,
            )
        ax.set_ylabel("mg/dL")
        ax.grid(alpha=0.3)

        bio = BytesIO()
        fig.savefig(bio, format="png")
        return bio.getvalue()


__all__ = ["ChartRenderer", "chart_points"]
