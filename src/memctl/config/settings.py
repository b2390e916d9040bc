"""Unified settings: CLI flags, env vars, and TOML config in one object.

Priority chain (highest to lowest):
  1. Init kwargs   CLI flags passed by Click
  2. Env vars      ``MEMCTL_*`` prefix, ``__`` for nested sections
  3. TOML file     ``memctl.toml`` discovered via walk-up
  4. Code defaults baked into the section models

The vault root follows its own chain: ``--vault``, then
``MEMCTL_VAULT_ROOT``, then ``[vault] path`` (relative to the TOML file),
then ``./.memctl-vault``.
"""

from __future__ import annotations

import threading
import tomllib
from pathlib import Path
from typing import Any

import click
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource

from memctl.config.discovery import find_config
from memctl.config.models import (
    BackendConfig,
    DoctorConfig,
    IndexConfig,
    PruneConfig,
    SearchConfig,
    TrackerConfig,
    VaultConfig,
)

DEFAULT_VAULT_DIRNAME = ".memctl-vault"


class TomlSettingsSource(PydanticBaseSettingsSource):
    """Read settings from a ``memctl.toml`` file."""

    def __init__(self, settings_cls: type[BaseSettings], toml_path: Path | None) -> None:
        super().__init__(settings_cls)
        self._data: dict[str, Any] = {}
        if toml_path and toml_path.is_file():
            raw = toml_path.read_text(encoding="utf-8")
            try:
                self._data = tomllib.loads(raw)
            except tomllib.TOMLDecodeError as exc:
                msg = f"Invalid TOML in {toml_path}: {exc}"
                raise click.ClickException(msg) from exc

    def get_field_value(self, field: Any, field_name: str) -> tuple[Any, str, bool]:
        val = self._data.get(field_name)
        return val, field_name, field_name in self._data

    def __call__(self) -> dict[str, Any]:
        return self._data


# TOML path handed to settings_customise_sources during construction.
_tls = threading.local()


class MemSettings(BaseSettings):
    """Unified settings for the memctl CLI.

    Stored on the :class:`~memctl.commands._context.AppContext` at the CLI
    root and handed to the Vault and services.

    Attributes:
        vault_root: Resolved vault directory.
        config_path: The TOML file in effect, or None.
    """

    model_config = {
        "frozen": True,
        "env_prefix": "MEMCTL_",
        "env_nested_delimiter": "__",
    }

    vault_root: Path | None = None
    config_path: Path | None = None

    # --- CLI flags ---
    json_output: bool = False
    quiet: bool = False
    verbose: bool = False
    log_json: bool = False

    # --- TOML sections ---
    vault: VaultConfig = Field(default_factory=VaultConfig)
    backend: BackendConfig = Field(default_factory=BackendConfig)
    tracker: TrackerConfig = Field(default_factory=TrackerConfig)
    prune: PruneConfig = Field(default_factory=PruneConfig)
    index: IndexConfig = Field(default_factory=IndexConfig)
    search: SearchConfig = Field(default_factory=SearchConfig)
    doctor: DoctorConfig = Field(default_factory=DoctorConfig)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Insert the TOML source between env vars and defaults."""
        toml_path = getattr(_tls, "toml_path", None)
        return (
            init_settings,
            env_settings,
            TomlSettingsSource(settings_cls, toml_path),
        )

    @classmethod
    def from_cli(
        cls,
        *,
        config_path: str | None = None,
        vault_root: Path | str | None = None,
        **cli_flags: Any,
    ) -> MemSettings:
        """Construct settings from a CLI invocation.

        Discovers ``memctl.toml`` via walk-up (or uses *config_path*),
        merges CLI flags as highest-priority overrides, then resolves the
        vault root.
        """
        toml_path: Path | None = None
        if config_path:
            p = Path(config_path)
            if not p.is_file():
                raise click.ClickException(f"Config file not found: {config_path}")
            toml_path = p
        else:
            toml_path = find_config()

        init_kwargs: dict[str, Any] = {"config_path": toml_path, **cli_flags}
        if vault_root is not None:
            init_kwargs["vault_root"] = Path(vault_root)

        _tls.toml_path = toml_path
        try:
            settings = cls(**init_kwargs)
        finally:
            _tls.toml_path = None

        return settings.model_copy(update={"vault_root": settings.resolve_vault_root()})

    def resolve_vault_root(self) -> Path:
        """The vault directory this configuration points at."""
        if self.vault_root is not None:
            return self.vault_root.expanduser().resolve()
        if self.vault.path:
            configured = Path(self.vault.path).expanduser()
            if not configured.is_absolute():
                base = self.config_path.parent if self.config_path else Path.cwd()
                configured = base / configured
            return configured.resolve()
        return (Path.cwd() / DEFAULT_VAULT_DIRNAME).resolve()
