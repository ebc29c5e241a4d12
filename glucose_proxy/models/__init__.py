"""Domain model exports."""

from .token import TokenRecord, now_ms

__all__ = ["TokenRecord", "now_ms"]
