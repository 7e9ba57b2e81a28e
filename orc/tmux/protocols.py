"""Narrow capability interface over the terminal multiplexer.

The planner never sees this interface; the reader, executor and enricher do.
Tests substitute an in-memory implementation.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional, Protocol, Sequence, runtime_checkable

from orc.core.models import PaneInfo, WindowInfo


class OptionScope(str, Enum):
    GLOBAL = "global"
    SESSION = "session"
    WINDOW = "window"
    PANE = "pane"


class SplitDirection(str, Enum):
    RIGHT = "right"  # new pane to the right (tmux -h)
    BELOW = "below"  # new pane below (tmux -v)


@runtime_checkable
class Multiplexer(Protocol):
    """Operations the engine needs from tmux.

    Read methods raise `MultiplexerUnavailable` when tmux cannot be reached.
    Mutating methods additionally raise `TmuxCommandError` on failure.
    Windows are addressed by window id (`@N`), panes by pane id (`%N`).
    """

    def session_exists(self, session: str) -> bool: ...

    def list_windows(self, session: str) -> list[WindowInfo]: ...

    def list_panes(self, window_id: str) -> list[PaneInfo]: ...

    def new_session(self, session: str, start_path: str, window_name: str) -> str:
        """Create a detached session; returns the id of its first window."""
        ...

    def new_window(self, session: str, name: str, start_path: str) -> tuple[str, str]:
        """Append a window; returns (window_id, first pane_id)."""
        ...

    def split_pane(
        self,
        pane_id: str,
        direction: SplitDirection,
        start_path: str,
        command: Optional[Sequence[str]] = None,
    ) -> str:
        """Split a pane; returns the new pane id."""
        ...

    def respawn_pane(self, pane_id: str, command: Sequence[str]) -> None: ...

    def move_pane(self, pane_id: str, target_window_id: str) -> None: ...

    def kill_window(self, window_id: str) -> None: ...

    def kill_pane(self, pane_id: str) -> None: ...

    def select_layout(self, window_id: str, layout: str) -> None: ...

    def set_option(self, scope: OptionScope, target: Optional[str], key: str, value: str) -> None: ...

    def get_option(self, scope: OptionScope, target: Optional[str], key: str) -> Optional[str]: ...

    def set_pane_title(self, pane_id: str, title: str) -> None: ...

    def set_environment(self, session: str, key: str, value: str) -> None: ...

    def bind_key(self, table: str, key: str, command: Sequence[str]) -> None: ...
