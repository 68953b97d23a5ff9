"""Config file discovery.

Walks up from the working directory the way git finds .git/. At each
level a dedicated ``cmdpipe.toml`` wins; failing that, a ``pyproject.toml``
with a ``[tool.cmdpipe]`` table counts. ``CMDPIPE_CONFIG`` short-circuits
the walk.
"""

from __future__ import annotations

import os
import tomllib
from pathlib import Path
from typing import Any

CONFIG_FILENAME = "cmdpipe.toml"
PYPROJECT_FILENAME = "pyproject.toml"
CONFIG_ENV_VAR = "CMDPIPE_CONFIG"


def _pyproject_has_section(path: Path) -> bool:
    try:
        data = tomllib.loads(path.read_text(encoding="utf-8"))
    except (OSError, tomllib.TOMLDecodeError):
        return False
    return isinstance(data.get("tool", {}).get("cmdpipe"), dict)


def find_config(start: Path | None = None) -> Path | None:
    """Return the nearest config file above *start* (default: cwd), or None."""
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        p = Path(env_path)
        return p if p.is_file() else None

    current = (start or Path.cwd()).resolve()
    while True:
        candidate = current / CONFIG_FILENAME
        if candidate.is_file():
            return candidate
        pyproject = current / PYPROJECT_FILENAME
        if pyproject.is_file() and _pyproject_has_section(pyproject):
            return pyproject
        if current.parent == current:
            return None
        current = current.parent


def read_config_data(path: Path) -> dict[str, Any]:
    """Parse *path* and return the cmdpipe settings table.

    Raises:
        tomllib.TOMLDecodeError: The file is not valid TOML.
    """
    data = tomllib.loads(path.read_text(encoding="utf-8"))
    if path.name == PYPROJECT_FILENAME:
        section = data.get("tool", {}).get("cmdpipe", {})
        return section if isinstance(section, dict) else {}
    return data
