"""Pydantic configuration models with code-baked defaults.

Sparse TOML contract: defaults live here, ``memctl.toml`` only holds
overrides. An empty file (or none at all) is a valid configuration.
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class VaultConfig(BaseModel):
    """[vault] section."""

    model_config = {"frozen": True}

    # Relative paths resolve against the directory holding memctl.toml.
    path: str | None = None
    name: str = "memory-vault"


class BackendConfig(BaseModel):
    """[backend] section."""

    model_config = {"frozen": True}

    use_notesmd: bool = False
    notesmd_path: str = "notesmd-cli"
    timeout_seconds: float = 10.0


class TrackerConfig(BaseModel):
    """[tracker] section."""

    model_config = {"frozen": True}

    lock_retries: int = Field(default=100, ge=1)
    lock_retry_delay_ms: int = Field(default=20, ge=0)
    stale_lock_seconds: float = Field(default=30.0, gt=0)


class PruneConfig(BaseModel):
    """[prune] section."""

    model_config = {"frozen": True}

    days: int = Field(default=30, ge=0)
    research_days: int = Field(default=90, ge=0)
    folders: list[str] = Field(default_factory=lambda: ["handoffs", "sessions"])


class IndexConfig(BaseModel):
    """[index] section."""

    model_config = {"frozen": True}

    display_limit: int = Field(default=20, ge=1)


class SearchConfig(BaseModel):
    """[search] section."""

    model_config = {"frozen": True}

    preview_chars: int = Field(default=100, ge=0)


class DoctorConfig(BaseModel):
    """[doctor] section."""

    model_config = {"frozen": True}

    sample_size: int = Field(default=50, ge=1)
