"""Runtime binary resolution policy.

These paths are internal platform policy; `tmux.binary` in config.yml wins
when set.
"""

from __future__ import annotations

import shutil
import sys
from pathlib import Path

_MACOS_TMUX_CANDIDATES = (
    Path("/opt/homebrew/bin/tmux"),
    Path("/usr/local/bin/tmux"),
)

_UNIX_TMUX_BINARY = "tmux"


def _is_macos() -> bool:
    return sys.platform == "darwin"


def resolve_tmux_binary() -> str:
    """Resolve tmux binary by platform.

    Homebrew installs are not on PATH for launchd/tmux-spawned shells on macOS,
    so check the usual prefixes before falling back to a PATH lookup.
    """
    if _is_macos():
        for candidate in _MACOS_TMUX_CANDIDATES:
            if candidate.exists():
                return str(candidate)
    return shutil.which(_UNIX_TMUX_BINARY) or _UNIX_TMUX_BINARY
