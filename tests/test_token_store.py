try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import sqlite3
from pathlib import Path

from glucose_proxy.clients.sqlite_store import TokenStore
from glucose_proxy.models import TokenRecord
from glucose_proxy.services.token_cipher import TokenCipherService


def _store(db_path: Path) -> TokenStore:
    return TokenStore(str(db_path), TokenCipherService(secret="store-secret"))


def test_load_returns_none_before_first_save(tmp_path: Path) -> None:
    assert _store(tmp_path / "tokens.db").load() is None


def test_save_then_load_returns_exact_values(tmp_path: Path) -> None:
    store = _store(tmp_path / "tokens.db")
    record = TokenRecord(
        access_token="access-1", refresh_token="refresh-1", expires_at=1_700_000_000_123
    )

    store.save(record)

    assert store.load() == record


def test_second_save_overwrites_the_single_row(tmp_path: Path) -> None:
    db_path = tmp_path / "tokens.db"
    store = _store(db_path)
    store.save(TokenRecord(access_token="a1", refresh_token="r1", expires_at=1))
    store.save(TokenRecord(access_token="a2", refresh_token="r2", expires_at=2))

    with sqlite3.connect(db_path) as conn:
        (count,) = conn.execute("SELECT COUNT(*) FROM tokens").fetchone()

    assert count == 1
    assert store.load() == TokenRecord(access_token="a2", refresh_token="r2", expires_at=2)


def test_tokens_are_encrypted_at_rest(tmp_path: Path) -> None:
    db_path = tmp_path / "tokens.db"
    _store(db_path).save(
        TokenRecord(access_token="plain-access", refresh_token="plain-refresh", expires_at=5)
    )

    with sqlite3.connect(db_path) as conn:
        access, refresh, expires_at = conn.execute(
            "SELECT access_token, refresh_token, expires_at FROM tokens WHERE id = 1"
        ).fetchone()

    assert access != "plain-access"
    assert refresh != "plain-refresh"
    assert expires_at == 5


def test_record_survives_a_new_store_instance(tmp_path: Path) -> None:
    db_path = tmp_path / "nested" / "dir" / "tokens.db"
    record = TokenRecord(access_token="a", refresh_token="r", expires_at=42)
    _store(db_path).save(record)

    assert _store(db_path).load() == record
