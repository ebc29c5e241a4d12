"""SQLite persistence for the single Dexcom token record."""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path
from typing import Optional

from glucose_proxy.models import TokenRecord
from glucose_proxy.services.token_cipher import TokenCipherService

logger = logging.getLogger(__name__)

# The proxy serves one account, so the token row always lives under this key.
TOKEN_ROW_ID = 1


class TokenStore:
    """Upsert/select pair against the one-row ``tokens`` table.

    Token strings are encrypted before they are written and decrypted on read,
    so callers only ever see plaintext records.
    """

    def __init__(self, db_path: str, cipher: TokenCipherService) -> None:
        self._db_path = Path(db_path)
        self._cipher = cipher
        if self._db_path.parent and not self._db_path.parent.exists():
            self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._ensure_schema()

    def _connect(self) -> sqlite3.Connection:
        conn = sqlite3.connect(self._db_path, check_same_thread=False)
        conn.row_factory = sqlite3.Row
        return conn

    def _ensure_schema(self) -> None:
        with self._connect() as conn:
            conn.execute(
                """
                CREATE TABLE IF NOT EXISTS tokens (
                    id INTEGER PRIMARY KEY,
                    access_token TEXT,
                    refresh_token TEXT,
                    expires_at INTEGER
                )
                """
            )
        logger.info("Token table ready at %s", self._db_path)

    def save(self, record: TokenRecord) -> TokenRecord:
        """Insert or overwrite the token row and return the stored record."""
        with self._connect() as conn:
            conn.execute(
                """
                INSERT INTO tokens (id, access_token, refresh_token, expires_at)
                VALUES (?, ?, ?, ?)
                ON CONFLICT(id) DO UPDATE SET
                    access_token = excluded.access_token,
                    refresh_token = excluded.refresh_token,
                    expires_at = excluded.expires_at
                """,
                (
                    TOKEN_ROW_ID,
                    self._cipher.encrypt(record.access_token),
                    self._cipher.encrypt(record.refresh_token),
                    record.expires_at,
                ),
            )
        logger.info("Tokens saved; access token valid until %s", record.expires_at)
        return record

    def load(self) -> Optional[TokenRecord]:
        with self._connect() as conn:
            row = conn.execute(
                "SELECT access_token, refresh_token, expires_at FROM tokens WHERE id = ?",
                (TOKEN_ROW_ID,),
            ).fetchone()
        if not row or not row["access_token"]:
            return None
        return TokenRecord(
            access_token=self._cipher.decrypt(row["access_token"]),
            refresh_token=(
                self._cipher.decrypt(row["refresh_token"]) if row["refresh_token"] else ""
            ),
            expires_at=int(row["expires_at"] or 0),
        )


__all__ = ["TOKEN_ROW_ID", "TokenStore"]
