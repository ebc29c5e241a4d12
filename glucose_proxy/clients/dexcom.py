"""
Dexcom API client.

Builds the OAuth consent URL, exchanges authorization codes and refresh tokens,
and issues authenticated reads against the Dexcom data endpoints.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import urlencode

import httpx
from fastapi import status

from glucose_proxy.core.config import DexcomSettings

logger = logging.getLogger(__name__)


class OAuthTokenExchangeError(Exception):
    """Raised when the token endpoint returns an error."""


class OAuthTokenNotFoundError(Exception):
    """Raised when no usable token record is stored."""


class DexcomAPIError(Exception):
    """Raised when a Dexcom data endpoint fails or cannot be reached."""

    def __init__(self, message: str, *, status_code: Optional[int] = None, details: Any = None) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.details = details if details is not None else message


class DexcomClient:
    """Thin async wrapper over the Dexcom OAuth and data endpoints."""

    LOGIN_PATH = "/v2/oauth2/login"
    TOKEN_PATH = "/v2/oauth2/token"
    EGVS_PATH = "/v2/users/self/egvs"

    def __init__(
        self,
        settings: DexcomSettings,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    def _http(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self._settings.base_url,
            timeout=self._settings.request_timeout_seconds,
            transport=self._transport,
        )

    def build_authorization_url(self, state: str | None = None) -> str:
        """Construct the Dexcom OAuth consent URL."""
        params = {
            "client_id": self._settings.client_id,
            "redirect_uri": str(self._settings.redirect_uri),
            "response_type": "code",
            "scope": " ".join(self._settings.scopes),
        }
        if state:
            params["state"] = state
        return f"{self._settings.base_url}{self.LOGIN_PATH}?{urlencode(params)}"

    async def _request_token(self, form: Dict[str, str]) -> Dict[str, Any]:
        payload = {
            "client_id": self._settings.client_id,
            "client_secret": self._settings.client_secret,
            **form,
        }
        try:
            async with self._http() as client:
                response = await client.post(self.TOKEN_PATH, data=payload)
        except httpx.HTTPError as exc:
            raise OAuthTokenExchangeError(f"Token endpoint unreachable: {exc}") from exc

        if response.status_code != status.HTTP_200_OK:
            raise OAuthTokenExchangeError(response.text)
        return response.json()

    async def exchange_authorization_code(self, code: str) -> Tuple[str, str, int]:
        """
        Exchange an authorization code for tokens.

        Returns a tuple of (access_token, refresh_token, expires_in_seconds).
        """
        token_payload = await self._request_token(
            {
                "code": code,
                "grant_type": "authorization_code",
                "redirect_uri": str(self._settings.redirect_uri),
            }
        )
        access_token = token_payload.get("access_token")
        refresh_token = token_payload.get("refresh_token")
        expires_in = token_payload.get("expires_in")

        if not access_token or not refresh_token or not expires_in:
            raise OAuthTokenExchangeError("Incomplete token payload returned from Dexcom.")

        return access_token, refresh_token, int(expires_in)

    async def refresh_token(self, refresh_token: str) -> Tuple[str, Optional[str], int]:
        """
        Mint a new access token from a refresh token.

        Dexcom rotates refresh tokens, but the new one is returned as ``None``
        when the response omits it so callers can keep the previous value.
        """
        token_payload = await self._request_token(
            {
                "refresh_token": refresh_token,
                "grant_type": "refresh_token",
            }
        )
        access_token = token_payload.get("access_token")
        expires_in = token_payload.get("expires_in")

        if not access_token or not expires_in:
            raise OAuthTokenExchangeError("Incomplete refresh payload returned from Dexcom.")

        return access_token, token_payload.get("refresh_token") or None, int(expires_in)

    async def get(
        self, path: str, *, access_token: str, params: Optional[Dict[str, Any]] = None
    ) -> Any:
        """Issue a bearer-authenticated GET and return the decoded JSON body."""
        headers = {"Authorization": f"Bearer {access_token}"}
        try:
            async with self._http() as client:
                response = await client.get(path, headers=headers, params=params)
        except httpx.HTTPError as exc:
            raise DexcomAPIError(f"Dexcom request failed: {exc}") from exc

        if response.is_error:
            try:
                details: Any = response.json()
            except ValueError:
                details = response.text
            raise DexcomAPIError(
                f"Dexcom returned HTTP {response.status_code} for {path}",
                status_code=response.status_code,
                details=details,
            )
        try:
            return response.json()
        except ValueError as exc:
            raise DexcomAPIError(
                f"Dexcom returned a non-JSON body for {path}",
                status_code=response.status_code,
                details=response.text,
            ) from exc

    async def fetch_egvs(
        self, *, access_token: str, start_date: str, end_date: str
    ) -> List[Dict[str, Any]]:
        """Return estimated glucose value records for the date range."""
        body = await self.get(
            self.EGVS_PATH,
            access_token=access_token,
            params={"startDate": start_date, "endDate": end_date},
        )
        if not isinstance(body, dict):
            raise DexcomAPIError(
                "Unexpected glucose payload from Dexcom", details=body
            )
        records = body.get("records")
        if records is None:
            records = body.get("egvs", [])
        if not isinstance(records, list):
            raise DexcomAPIError(
                "Glucose records in Dexcom payload are not a list", details=body
            )
        logger.debug("Fetched %d glucose records", len(records))
        return records


__all__ = [
    "DexcomAPIError",
    "DexcomClient",
    "OAuthTokenExchangeError",
    "OAuthTokenNotFoundError",
]
