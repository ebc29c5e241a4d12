"""Symmetric encryption for Dexcom tokens kept in the SQLite database."""

from __future__ import annotations

import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken


class TokenCipherService:
    """Encrypt and decrypt Dexcom token strings using a derived Fernet key."""

    def __init__(self, *, secret: str) -> None:
        if not secret:
            raise ValueError(
                "No secret for encrypting Dexcom tokens; "
                "set TOKEN_ENCRYPTION_SECRET or DEXCOM_CLIENT_SECRET."
            )
        key = base64.urlsafe_b64encode(hashlib.sha256(secret.encode("utf-8")).digest())
        self._fernet = Fernet(key)

    def encrypt(self, plaintext: str) -> str:
        """Encrypt a Dexcom token and return the ciphertext stored in the database."""
        return self._fernet.encrypt(plaintext.encode("utf-8")).decode("utf-8")

    def decrypt(self, ciphertext: str) -> str:
        """Decrypt a stored Dexcom token and return the plaintext."""
        try:
            plaintext = self._fernet.decrypt(ciphertext.encode("utf-8"))
        except InvalidToken as exc:
            raise ValueError(
                "Stored Dexcom token could not be decrypted; was the secret rotated?"
            ) from exc
        return plaintext.decode("utf-8")


__all__ = ["TokenCipherService"]
