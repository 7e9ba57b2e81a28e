"""Runtime-only policy modules (not user-configurable)."""

from orc.runtime.binaries import resolve_tmux_binary

__all__ = ["resolve_tmux_binary"]
