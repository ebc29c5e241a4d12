"""Schemas related to OAuth flows."""

from __future__ import annotations

from pydantic import BaseModel, Field


class OAuthCallbackPayload(BaseModel):
    """Payload sent to complete the OAuth callback exchange."""

    code: str = Field(..., description="Authorization code returned by Dexcom OAuth.")


class TokenRefreshResponse(BaseModel):
    """Token pair returned after a forced refresh."""

    access_token: str
    refresh_token: str
    expires_in: int = Field(..., description="Seconds until the access token expires.")


__all__ = ["OAuthCallbackPayload", "TokenRefreshResponse"]
