"""
Factory functions to provide shared clients and services as FastAPI dependencies.
"""

from functools import lru_cache

from glucose_proxy.clients import DexcomClient, TokenStore
from glucose_proxy.core.config import get_settings
from glucose_proxy.services import ChartRenderer, DexcomTokenService, TokenCipherService


@lru_cache()
def _settings():
    """Internal helper to cache settings for client factories."""
    return get_settings()


@lru_cache()
def get_dexcom_client() -> DexcomClient:
    """Create a singleton Dexcom API client."""
    return DexcomClient(_settings().dexcom)


@lru_cache()
def get_token_cipher_service() -> TokenCipherService:
    """Provide symmetric encryption helper for token storage."""
    settings = _settings()
    secret = settings.security.token_encryption_secret or settings.dexcom.client_secret
    return TokenCipherService(secret=secret)


@lru_cache()
def get_token_store() -> TokenStore:
    """Provide the SQLite token store, creating its table on first use."""
    return TokenStore(_settings().database.path, get_token_cipher_service())


@lru_cache()
def get_dexcom_token_service() -> DexcomTokenService:
    """Provide the process-wide holder of the Dexcom token record."""
    return DexcomTokenService(
        store=get_token_store(),
        dexcom_client=get_dexcom_client(),
    )


@lru_cache()
def get_chart_renderer() -> ChartRenderer:
    return ChartRenderer()


__all__ = [
    "get_chart_renderer",
    "get_dexcom_client",
    "get_dexcom_token_service",
    "get_token_cipher_service",
    "get_token_store",
]
