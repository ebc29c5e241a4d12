"""Verify the proxy's environment configuration before starting the server.

Two commands are available:

``check``
    Load ``AppSettings`` from the given ``.env`` file and report missing or
    malformed entries.
``db``
    Run ``check``, then open the configured SQLite database, create the token
    table if needed and report whether a Dexcom token is stored.

Example usages::

    python -m scripts.check_env check --env-file /opt/glucose-proxy/.env
    python -m scripts.check_env db --env-file /opt/glucose-proxy/.env
"""

from __future__ import annotations

import argparse
import sqlite3
import sys
from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from glucose_proxy.clients.sqlite_store import TokenStore
from glucose_proxy.core.config import AppSettings, _load_env_file
from glucose_proxy.services.token_cipher import TokenCipherService

EXIT_OK = 0
EXIT_VALIDATION_ERROR = 2
EXIT_DATABASE_ERROR = 4
EXIT_RUNTIME_ERROR = 5


def _load_settings(env_file: Path) -> AppSettings:
    """Build settings with ``env_file`` layered under the process environment."""
    _load_env_file(str(env_file))
    return AppSettings()  # type: ignore[call-arg]


def _describe_database(settings: AppSettings) -> int:
    secret = settings.security.token_encryption_secret or settings.dexcom.client_secret
    try:
        cipher = TokenCipherService(secret=secret)
    except ValueError as exc:
        print(
            f"Token encryption is not configured: {exc}",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR

    try:
        store = TokenStore(settings.database.path, cipher)
        record = store.load()
    except (sqlite3.Error, OSError) as exc:
        print(f"Database check failed for {settings.database.url}: {exc}", file=sys.stderr)
        return EXIT_DATABASE_ERROR
    except ValueError as exc:
        print(f"Stored token is unreadable: {exc}", file=sys.stderr)
        return EXIT_DATABASE_ERROR

    if record is None:
        print(f"Database OK ({settings.database.path}); no token stored yet.")
        return EXIT_OK

    expires = datetime.fromtimestamp(record.expires_at / 1000, tz=timezone.utc)
    state = "expired" if record.is_expired() else "valid"
    print(
        f"Database OK ({settings.database.path}); "
        f"access token {state}, expires {expires.isoformat()}."
    )
    return EXIT_OK


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Validate proxy settings and the token database."
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    for name, help_text in (
        ("check", "Validate settings only."),
        ("db", "Validate settings and inspect the token database."),
    ):
        subparser = subparsers.add_parser(name, help=help_text)
        subparser.add_argument(
            "--env-file",
            default=".env",
            type=Path,
            help="Path to the environment file (default: .env in the repo root).",
        )

    return parser


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)

    env_file: Path = args.env_file
    if not env_file.exists():
        print(
            f"Environment file {env_file} does not exist. "
            "Ensure the path is correct or create it before running this tool.",
            file=sys.stderr,
        )
        return EXIT_RUNTIME_ERROR

    try:
        settings = _load_settings(env_file)
    except ValidationError as exc:
        print(
            "Settings validation failed. Missing or invalid values detected:\n"
            f"{exc.json(indent=2)}",
            file=sys.stderr,
        )
        return EXIT_VALIDATION_ERROR

    print(f"Settings OK (environment: {settings.environment}).")
    if args.command == "db":
        return _describe_database(settings)
    return EXIT_OK


if __name__ == "__main__":  # pragma: no cover - script entry point
    sys.exit(main())
