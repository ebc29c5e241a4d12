"""Public schema exports."""

from .auth import OAuthCallbackPayload, TokenRefreshResponse
from .glucose import GlucoseTrends

__all__ = [
    "GlucoseTrends",
    "OAuthCallbackPayload",
    "TokenRefreshResponse",
]
