"""Data models for desired and observed tmux topology."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional


class WindowRole(str, Enum):
    """What a live window is for."""

    MEMBER = "member"
    HOLDING_AREA = "holding_area"


class PaneRole(str, Enum):
    """Closed set of pane roles inside a member window.

    Values are what gets persisted in the `@pane_role` tmux pane option.
    """

    EDITOR = "editor"
    AGENT = "agent"
    SHELL = "shell"
    GUEST = "guest"

    @classmethod
    def from_tag(cls, tag: Optional[str]) -> Optional["PaneRole"]:
        """Parse a persisted tag; unknown or empty tags yield None."""
        if not tag:
            return None
        try:
            return cls(tag.strip().lower())
        except ValueError:
            return None


# Positional fallback when a pane carries no tag.
_POSITIONAL_ROLES = (PaneRole.EDITOR, PaneRole.AGENT, PaneRole.SHELL)


def role_for_position(position: int) -> PaneRole:
    """Infer a pane role from its position inside the window."""
    if 0 <= position < len(_POSITIONAL_ROLES):
        return _POSITIONAL_ROLES[position]
    return PaneRole.GUEST


@dataclass(frozen=True)
class DesiredMember:
    """One workbench that should have a live window."""

    name: str
    path: str
    id: str
    parent_group_id: str
    active: bool = True
    repo_path: Optional[str] = None


@dataclass(frozen=True)
class DesiredState:
    """Ledger-derived target topology for one session."""

    session_name: str
    workshop_id: str
    members: tuple[DesiredMember, ...] = ()

    @property
    def active_members(self) -> list[DesiredMember]:
        return [m for m in self.members if m.active]


@dataclass(frozen=True)
class ActualSession:
    name: str
    exists: bool


@dataclass(frozen=True)
class ActualWindow:
    """A live window as reported by tmux."""

    index: int
    window_id: str
    name: str
    role: WindowRole
    layout: str = ""
    width: int = 0
    height: int = 0
    remain_on_exit: bool = False
    # left behind by an interrupted CreateWindow
    building: bool = False

    @property
    def is_holding_area(self) -> bool:
        return self.role is WindowRole.HOLDING_AREA


@dataclass(frozen=True)
class ActualPane:
    """A live pane. `index` is its position within the window, 0-based."""

    index: int
    window_index: int
    window_id: str
    pane_id: str
    alive: bool
    role: PaneRole
    tagged: bool = False


@dataclass(frozen=True)
class ActualState:
    """Everything the reader observed for one session."""

    session: ActualSession
    windows: tuple[ActualWindow, ...] = ()
    panes: tuple[ActualPane, ...] = ()

    @classmethod
    def absent(cls, session_name: str) -> "ActualState":
        return cls(session=ActualSession(name=session_name, exists=False))

    def panes_in(self, window: ActualWindow) -> list[ActualPane]:
        return sorted((p for p in self.panes if p.window_id == window.window_id), key=lambda p: p.index)

    def windows_named(self, name: str) -> list[ActualWindow]:
        return sorted((w for w in self.windows if w.name == name), key=lambda w: w.index)


@dataclass(frozen=True)
class WindowInfo:
    """Raw window row from the multiplexer."""

    index: int
    window_id: str
    name: str
    layout: str = ""
    width: int = 0
    height: int = 0
    remain_on_exit: bool = False
    building: bool = False


@dataclass(frozen=True)
class PaneInfo:
    """Raw pane row from the multiplexer."""

    index: int
    pane_id: str
    dead: bool
    tag: Optional[str] = None
    title: str = ""


@dataclass
class EnrichReport:
    """What an enrichment pass did."""

    session_name: str
    skipped: bool = False
    reason: Optional[str] = None
    bindings_applied: bool = False
    windows_enriched: list[str] = field(default_factory=list)
    windows_unchanged: list[str] = field(default_factory=list)
