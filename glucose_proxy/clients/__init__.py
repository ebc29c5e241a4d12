"""Expose constructed client wrappers."""

from .dexcom import (
    DexcomAPIError,
    DexcomClient,
    OAuthTokenExchangeError,
    OAuthTokenNotFoundError,
)
from .sqlite_store import TokenStore

__all__ = [
    "DexcomAPIError",
    "DexcomClient",
    "OAuthTokenExchangeError",
    "OAuthTokenNotFoundError",
    "TokenStore",
]
