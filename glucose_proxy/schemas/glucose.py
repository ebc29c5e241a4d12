"""Response models for the glucose data endpoints."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field


class GlucoseTrends(BaseModel):
    """Aggregate statistics for a date range of readings."""

    average: Optional[float] = Field(None, description="Mean glucose value (mg/dL).")
    highest: Optional[float] = None
    lowest: Optional[float] = None
    count: int = Field(0, description="Number of readings with a numeric value.")


__all__ = ["GlucoseTrends"]
