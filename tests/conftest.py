"""Shared pytest fixtures for memctl tests."""

from __future__ import annotations

import logging
import os
from collections.abc import Iterator
from pathlib import Path

import pytest
import structlog
from click.testing import CliRunner

from memctl.config.settings import MemSettings
from memctl.infrastructure.vault import Vault


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Keep the developer's MEMCTL_* environment out of every test."""
    for name in list(os.environ):
        if name.startswith("MEMCTL_"):
            monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def _restore_root_logging() -> Iterator[None]:
    """Drop the stderr handler ``configure_logging`` attaches during CLI tests."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter):
            root.removeHandler(handler)
    root.setLevel(level)


@pytest.fixture
def cli_runner() -> CliRunner:
    """Provide a Click CLI test runner."""
    return CliRunner()


@pytest.fixture
def vault_root(tmp_path: Path) -> Path:
    """Directory the vault fixtures and the isolated CLI share."""
    root = tmp_path / "vault"
    root.mkdir()
    return root


@pytest.fixture
def settings(vault_root: Path) -> MemSettings:
    return MemSettings(vault_root=vault_root)


@pytest.fixture
def vault(settings: MemSettings) -> Vault:
    """A vault with the standard folder layout already created."""
    v = Vault(settings)
    v.ensure_structure()
    return v


@pytest.fixture
def _isolated_vault(tmp_path: Path, vault_root: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Point the CLI at the temp vault and keep config discovery inside tmp_path.

    Use via ``@pytest.mark.usefixtures("_isolated_vault")`` on command test
    classes.
    """
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("MEMCTL_VAULT_ROOT", str(vault_root))
    # A missing MEMCTL_CONFIG target stops walk-up discovery.
    monkeypatch.setenv("MEMCTL_CONFIG", str(tmp_path / "absent.toml"))
