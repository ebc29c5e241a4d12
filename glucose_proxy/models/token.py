"""
Domain model for the single persisted Dexcom token record.
"""

from __future__ import annotations

import time

from pydantic import BaseModel, ConfigDict, Field


def now_ms() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(time.time() * 1000)


class TokenRecord(BaseModel):
    """The OAuth token pair held for the one connected Dexcom account."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: str
    expires_at: int = Field(..., description="Absolute expiry as epoch milliseconds.")

    @classmethod
    def from_grant(
        cls,
        access_token: str,
        refresh_token: str,
        expires_in: int,
        *,
        issued_at_ms: int | None = None,
    ) -> "TokenRecord":
        """Build a record from a token endpoint response."""
        issued = now_ms() if issued_at_ms is None else issued_at_ms
        return cls(
            access_token=access_token,
            refresh_token=refresh_token,
            expires_at=issued + expires_in * 1000,
        )

    def is_expired(self, at_ms: int | None = None) -> bool:
        current = now_ms() if at_ms is None else at_ms
        return current > self.expires_at

    def expires_in(self, at_ms: int | None = None) -> int:
        """Whole seconds left before expiry (negative once expired)."""
        current = now_ms() if at_ms is None else at_ms
        return (self.expires_at - current) // 1000


__all__ = ["TokenRecord", "now_ms"]
