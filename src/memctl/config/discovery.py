"""Config file discovery.

Walk-up finder locates ``memctl.toml``, the way git finds ``.git/``.
``MEMCTL_CONFIG`` and the ``--config`` flag override discovery.
"""

from __future__ import annotations

import os
from pathlib import Path

CONFIG_FILENAME = "memctl.toml"
CONFIG_ENV_VAR = "MEMCTL_CONFIG"


def find_config(start: Path | None = None) -> Path | None:
    """Walk up from *start* (default: cwd) looking for ``memctl.toml``.

    ``MEMCTL_CONFIG`` is checked first; if it names a missing file,
    discovery stops and None is returned.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        p = Path(env_path)
        if p.is_file():
            return p
        return None

    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break
        current = parent
    return None
