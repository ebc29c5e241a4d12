"""Expose dependency helpers for FastAPI routers."""

from .clients import (
    get_chart_renderer,
    get_dexcom_client,
    get_dexcom_token_service,
    get_token_cipher_service,
    get_token_store,
)

__all__ = [
    "get_chart_renderer",
    "get_dexcom_client",
    "get_dexcom_token_service",
    "get_token_cipher_service",
    "get_token_store",
]
