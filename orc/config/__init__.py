"""Configuration management.

Unlike a module-level singleton, config is loaded once by the CLI entry point
and travels inside `orc.core.context.OrcContext`:

    from orc.config import load_config
    config = load_config()
"""

import os

from orc.config.loader import load_config, resolve_config_path
from orc.config.schema import OrcConfig
from orc.constants import DB_PATH_ENV
from orc.runtime import resolve_tmux_binary
from orc.utils import expand_path


def tmux_binary(config: OrcConfig) -> str:
    """Configured tmux binary, or the platform default."""
    return config.tmux.binary or resolve_tmux_binary()


def ledger_db_path(config: OrcConfig) -> str:
    """Ledger database path (lazy env override for test compatibility)."""
    env_path = os.getenv(DB_PATH_ENV)
    if env_path:
        return expand_path(env_path)
    return expand_path(config.ledger.db_path)


def lock_dir(config: OrcConfig) -> str:
    return expand_path(config.locks.dir)


__all__ = ["OrcConfig", "load_config", "resolve_config_path", "tmux_binary", "ledger_db_path", "lock_dir"]
