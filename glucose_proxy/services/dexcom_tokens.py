"""
Helpers for holding and refreshing the Dexcom OAuth token record.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING, Callable, Optional

from glucose_proxy.clients.dexcom import DexcomClient, OAuthTokenNotFoundError
from glucose_proxy.models import TokenRecord, now_ms

if TYPE_CHECKING:
    from glucose_proxy.clients.sqlite_store import TokenStore

logger = logging.getLogger(__name__)


class DexcomTokenService:
    """Owns the token record for the single connected Dexcom account.

    The record is read from the store once (``load``) and replaced as a whole
    whenever a new grant is stored. Refreshes run one at a time: callers that
    queue behind an in-flight refresh get its result instead of spending the
    rotated refresh token a second time.
    """

    def __init__(
        self,
        store: "TokenStore",
        dexcom_client: DexcomClient,
        *,
        clock: Callable[[], int] = now_ms,
    ) -> None:
        self._store = store
        self._dexcom = dexcom_client
        self._clock = clock
        self._record: Optional[TokenRecord] = None
        self._loaded = False
        self._refresh_lock = asyncio.Lock()

    def load(self) -> Optional[TokenRecord]:
        """(Re)read the persisted record into memory."""
        self._record = self._store.load()
        self._loaded = True
        if self._record is None:
            logger.info("No Dexcom token stored yet; OAuth flow required.")
        return self._record

    def current(self) -> Optional[TokenRecord]:
        if not self._loaded:
            self.load()
        return self._record

    def _replace(self, record: TokenRecord) -> TokenRecord:
        self._record = self._store.save(record)
        self._loaded = True
        return self._record

    async def store_grant(
        self, access_token: str, refresh_token: str, expires_in: int
    ) -> TokenRecord:
        """Persist a freshly issued token pair, overwriting any previous one.

        Waits for an in-flight refresh so its result cannot overwrite the
        newer grant afterwards.
        """
        async with self._refresh_lock:
            record = TokenRecord.from_grant(
                access_token, refresh_token, expires_in, issued_at_ms=self._clock()
            )
            return self._replace(record)

    async def get_valid_record(self) -> TokenRecord:
        """Return an unexpired record, refreshing it first when necessary."""
        record = self.current()
        if record is None or not record.access_token:
            raise OAuthTokenNotFoundError("No Dexcom token stored.")
        if not record.is_expired(self._clock()):
            return record
        logger.info("Dexcom access token expired; refreshing.")
        return await self.refresh(stale=record)

    async def refresh(self, *, stale: Optional[TokenRecord] = None) -> TokenRecord:
        """Exchange the stored refresh token for a new pair.

        ``stale`` is the record the caller saw before asking; when another
        refresh replaced it while this call waited for the lock, that newer
        record is returned without contacting Dexcom again.
        """
        if stale is None:
            stale = self.current()

        async with self._refresh_lock:
            record = self.current()
            if record is not None and record is not stale and not record.is_expired(
                self._clock()
            ):
                return record

            if record is None or not record.refresh_token:
                raise OAuthTokenNotFoundError("No refresh token available.")

            issued_at = self._clock()
            access_token, refresh_token, expires_in = await self._dexcom.refresh_token(
                record.refresh_token
            )
            refreshed = TokenRecord.from_grant(
                access_token,
                refresh_token or record.refresh_token,
                expires_in,
                issued_at_ms=issued_at,
            )
            logger.info("Dexcom access token refreshed.")
            return self._replace(refreshed)


__all__ = ["DexcomTokenService"]
