"""orc - workshop tmux session reconciliation."""

from __future__ import annotations

import tomllib
from importlib.metadata import PackageNotFoundError, version
from pathlib import Path
from typing import Optional

_PYPROJECT = Path(__file__).resolve().parent.parent / "pyproject.toml"


def _checkout_version() -> Optional[str]:
    """Version declared in a source checkout's pyproject.toml, if there is one."""
    try:
        project = tomllib.loads(_PYPROJECT.read_text(encoding="utf-8")).get("project", {})
    except (OSError, tomllib.TOMLDecodeError):
        return None
    value = project.get("version") if isinstance(project, dict) else None
    return value if isinstance(value, str) else None


def _resolve_version() -> str:
    # A checkout wins over stale editable-install metadata.
    checkout = _checkout_version()
    if checkout:
        return checkout
    try:
        return version("orc")
    except PackageNotFoundError:
        return "0.0.0"


__version__ = _resolve_version()

__all__ = ["__version__"]
