"""Checks on what the distribution installs."""

from __future__ import annotations

try:
    from . import _bootstrap  # noqa: F401
except Exception:  # pragma: no cover - fallback for direct execution
    import _bootstrap  # type: ignore # noqa: F401

import tomllib
from pathlib import Path

PROJECT_ROOT = Path(__file__).resolve().parents[1]


def _pyproject() -> dict:
    return tomllib.loads((PROJECT_ROOT / "pyproject.toml").read_text(encoding="utf-8"))


def test_only_the_application_package_is_installed() -> None:
    include = _pyproject()["tool"]["setuptools"]["packages"]["find"]["include"]

    assert include == ["glucose_proxy*"]


def test_maintenance_scripts_stay_a_repo_checkout_tool() -> None:
    assert not (PROJECT_ROOT / "scripts" / "__init__.py").exists()
    assert (PROJECT_ROOT / "scripts" / "check_env.py").exists()
