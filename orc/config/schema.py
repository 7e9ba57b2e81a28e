from typing import Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from orc.constants import SEED_WINDOW_NAME

_DEFAULT_PANE_TITLES: Dict[str, str] = {
    "editor": "editor",
    "agent": "agent",
    "shell": "shell",
    "guest": "guest",
}


class TmuxConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    binary: Optional[str] = None  # None -> orc.runtime.resolve_tmux_binary()
    command_timeout_s: float = Field(default=10.0, gt=0)


class LedgerConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    db_path: str = "~/.orc/orc.db"


class LayoutConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    name: Literal["main-vertical"] = "main-vertical"
    main_pane_width_pct: int = Field(default=50, ge=10, le=90)
    # Columns a main pane may drift from the configured width and still count as canonical.
    tolerance_cells: int = Field(default=2, ge=0, le=10)


class HoldingAreaConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    window_name: str = "imps"

    @field_validator("window_name")
    @classmethod
    def validate_window_name(cls, v: str) -> str:
        """Reject names tmux would parse as targets or that collide with the seed window."""
        name = v.strip()
        if not name:
            raise ValueError("holding_area.window_name must not be empty")
        if any(ch in name for ch in ":.") or name.startswith(("@", "%", "=")):
            raise ValueError(f"Invalid holding area window name: {v!r}")
        if name == SEED_WINDOW_NAME:
            raise ValueError(f"holding_area.window_name must not be {SEED_WINDOW_NAME!r}")
        return name


class PanesConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    editor_command: str = "vim"
    agent_command: str = "orc connect"
    shell_command: Optional[str] = None  # None -> the session's default shell
    titles: Dict[str, str] = dict(_DEFAULT_PANE_TITLES)

    @field_validator("titles")
    @classmethod
    def merge_default_titles(cls, v: Dict[str, str]) -> Dict[str, str]:
        unknown = set(v) - set(_DEFAULT_PANE_TITLES)
        if unknown:
            raise ValueError(f"Unknown pane roles in titles: {', '.join(sorted(unknown))}")
        return {**_DEFAULT_PANE_TITLES, **v}


class LocksConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    dir: str = "~/.orc/locks"


class EnrichmentConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    bindings: bool = True
    session_picker_script: str = "$HOME/.orc/tmux/orc-session-picker.sh"
    # Ledger commands run from the status bar popup and menu.
    summary_command: str = "orc summary"
    new_workbench_command: str = "orc workbench like"
    archive_workbench_command: str = "orc infra archive-workbench"


class OrcConfig(BaseModel):
    model_config = ConfigDict(extra="allow")
    tmux: TmuxConfig = TmuxConfig()
    ledger: LedgerConfig = LedgerConfig()
    layout: LayoutConfig = LayoutConfig()
    holding_area: HoldingAreaConfig = HoldingAreaConfig()
    panes: PanesConfig = PanesConfig()
    locks: LocksConfig = LocksConfig()
    enrichment: EnrichmentConfig = EnrichmentConfig()
