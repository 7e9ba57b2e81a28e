"""Differ / Planner: compute the actions that converge a session.

`plan_reconciliation` is a pure function of its inputs. It never talks to tmux.
An empty active set is refused here; the checks that need the filesystem
(paths, repositories) live in `orc.reconcile.desired.validate_desired`.

A window is a member window by name alone. A window left half-built by an
interrupted CreateWindow (marked `@orc_building`) is the one exception: it is
torn down and created again.

Emission order is fixed:

1. CreateSession (absent session; the rest is planned as if it were empty)
2. CreateWindow per active member without a window, in desired order
3. Removals, in live window-index order: live panes of non-member windows are
   relocated into the holding area and the window is killed (this includes
   duplicate and half-built member windows); guest panes in member windows are relocated (alive) or pruned (dead)
4. Holding area: prune dead panes, kill it when nothing would remain
5. Per surviving window (members in desired order, then the holding area):
   remain-on-exit and layout convergence
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from instrukt_ai_logging import get_logger

from orc.config.schema import OrcConfig
from orc.constants import MEMBER_PANE_COUNT, REMAIN_ON_EXIT_OPTION, SEED_WINDOW_NAME
from orc.core.errors import PreconditionFailed
from orc.core.models import ActualPane, ActualState, ActualWindow, DesiredMember, DesiredState, PaneRole
from orc.reconcile.layout import is_canonical_main_vertical

logger = get_logger(__name__)

_MEMBER_ROLES = frozenset({PaneRole.EDITOR, PaneRole.AGENT, PaneRole.SHELL})


class ActionType(str, Enum):
    CREATE_SESSION = "CreateSession"
    CREATE_WINDOW = "CreateWindow"
    RELOCATE_PANE = "RelocatePane"
    PRUNE_DEAD_PANE = "PruneDeadPane"
    KILL_WINDOW = "KillWindow"
    RECONCILE_LAYOUT = "ReconcileLayout"
    SET_WINDOW_OPTION = "SetWindowOption"


@dataclass(frozen=True)
class Action:
    """One corrective step.

    Existing resources are addressed by tmux id (`window_id`, `pane_id`); a
    window that only comes into existence during execution (a new member
    window, a holding area created by the first relocation) is addressed by
    `window_name` and resolved at execution time.
    """

    type: ActionType
    description: str
    session_name: str
    member: Optional[DesiredMember] = None
    window_id: Optional[str] = None
    window_name: Optional[str] = None
    pane_id: Optional[str] = None
    target_window_name: Optional[str] = None
    create_target: bool = False
    start_path: Optional[str] = None
    option: Optional[str] = None
    value: Optional[str] = None
    layout: Optional[str] = None


@dataclass(frozen=True)
class WindowSummary:
    """Per-window rollup for display. Never used for execution."""

    name: str
    is_holding_area: bool
    is_member: bool
    pane_count: int
    dead_pane_count: int
    healthy: bool


@dataclass(frozen=True)
class Plan:
    session_name: str
    session_exists: bool
    window_summary: tuple[WindowSummary, ...]
    actions: tuple[Action, ...]

    @property
    def is_converged(self) -> bool:
        return not self.actions

    def actions_of(self, action_type: ActionType) -> list[Action]:
        return [a for a in self.actions if a.type is action_type]


@dataclass(frozen=True)
class PlannerSettings:
    holding_area_name: str = "imps"
    layout_name: str = "main-vertical"
    main_pane_width_pct: int = 50
    tolerance_cells: int = 2

    @classmethod
    def from_config(cls, config: OrcConfig) -> "PlannerSettings":
        return cls(
            holding_area_name=config.holding_area.window_name,
            layout_name=config.layout.name,
            main_pane_width_pct=config.layout.main_pane_width_pct,
            tolerance_cells=config.layout.tolerance_cells,
        )

    @property
    def main_pane_width(self) -> str:
        return f"{self.main_pane_width_pct}%"


class _PlanBuilder:
    """Mutable scratch state for one planning pass."""

    def __init__(self, desired: DesiredState, actual: ActualState, settings: PlannerSettings) -> None:
        self.desired = desired
        self.settings = settings
        self.session = desired.session_name
        self.actual = actual if actual.session.exists else ActualState.absent(desired.session_name)
        self.actions: list[Action] = []

        self.windows = sorted(self.actual.windows, key=lambda w: w.index)
        self.holding: Optional[ActualWindow] = next((w for w in self.windows if w.is_holding_area), None)
        self.holding_available = self.holding is not None
        self.relocated_into_holding = 0
        # window ids whose pane set changes during this plan
        self.changed: set[str] = set()

        self.active_names = {m.name for m in desired.active_members}
        self.member_windows: dict[str, ActualWindow] = {}
        for window in self.windows:
            if window.is_holding_area or window.building or window.name not in self.active_names:
                continue
            self.member_windows.setdefault(window.name, window)

    def _is_complete(self, window: ActualWindow) -> bool:
        """Whether the window still has its editor, agent and shell pane (dead or alive)."""
        roles = {p.role for p in self.actual.panes_in(window)}
        return _MEMBER_ROLES <= roles

    def emit(self, action: Action) -> None:
        self.actions.append(action)

    # Step 1

    def create_session(self) -> None:
        if self.actual.session.exists:
            return
        first = self.desired.active_members[0] if self.desired.active_members else None
        self.emit(
            Action(
                type=ActionType.CREATE_SESSION,
                description=f"Create session {self.session}",
                session_name=self.session,
                start_path=first.path if first else None,
            )
        )

    # Step 2

    def create_windows(self) -> None:
        for member in self.desired.active_members:
            if member.name in self.member_windows:
                continue
            self.emit(
                Action(
                    type=ActionType.CREATE_WINDOW,
                    description=f"Create window {member.name} ({member.path})",
                    session_name=self.session,
                    member=member,
                    window_name=member.name,
                    start_path=member.path,
                )
            )

    # Step 3

    def remove_strays(self) -> None:
        for window in self.windows:
            if window.is_holding_area:
                continue
            panes = self.actual.panes_in(window)
            if self.member_windows.get(window.name) is window:
                self._evict_guests(window, panes)
                continue

            if window.name == SEED_WINDOW_NAME:
                self._kill(window, "placeholder window")
                continue

            alive = [p for p in panes if p.alive]
            for pane in alive:
                self._relocate(window, pane)
            if panes and not alive:
                reason = f"all {len(panes)} panes dead"
            else:
                reason = self._removal_reason(window)
            self._kill(window, reason)

    def _removal_reason(self, window: ActualWindow) -> str:
        if window.name == self.settings.holding_area_name:
            return "duplicate holding area"
        if window.building and window.name in self.active_names:
            return "unfinished member window"
        if window.name in self.member_windows:
            return "duplicate member window"
        if any(m.name == window.name and not m.active for m in self.desired.members):
            return "inactive workbench"
        return "not in workshop"

    def _evict_guests(self, window: ActualWindow, panes: list[ActualPane]) -> None:
        for pane in panes:
            if pane.role is not PaneRole.GUEST:
                continue
            if pane.alive:
                self._relocate(window, pane)
            else:
                self._prune(window, pane)

    def _relocate(self, window: ActualWindow, pane: ActualPane) -> None:
        create = not self.holding_available
        holding_name = self.settings.holding_area_name
        description = f"Relocate live pane {pane.pane_id} from {window.name} to {holding_name}"
        if create:
            description += " (creating it)"
        first = self.desired.active_members[0] if self.desired.active_members else None
        self.emit(
            Action(
                type=ActionType.RELOCATE_PANE,
                description=description,
                session_name=self.session,
                window_id=window.window_id,
                window_name=window.name,
                pane_id=pane.pane_id,
                target_window_name=holding_name,
                create_target=create,
                start_path=first.path if create and first else None,
            )
        )
        self.holding_available = True
        self.relocated_into_holding += 1
        self._mark_removed(window)

    def _prune(self, window: ActualWindow, pane: ActualPane) -> None:
        self.emit(
            Action(
                type=ActionType.PRUNE_DEAD_PANE,
                description=f"Prune dead pane {pane.pane_id} in {window.name}",
                session_name=self.session,
                window_id=window.window_id,
                window_name=window.name,
                pane_id=pane.pane_id,
            )
        )
        self._mark_removed(window)

    def _kill(self, window: ActualWindow, reason: str) -> None:
        self.emit(
            Action(
                type=ActionType.KILL_WINDOW,
                description=f"Kill window {window.name} ({reason})",
                session_name=self.session,
                window_id=window.window_id,
                window_name=window.name,
            )
        )

    def _mark_removed(self, window: ActualWindow) -> None:
        self.changed.add(window.window_id)

    # Step 4

    def tidy_holding_area(self) -> bool:
        """Prune the holding area. Returns whether it survives the plan."""
        holding = self.holding
        if holding is None:
            return self.relocated_into_holding > 0

        panes = self.actual.panes_in(holding)
        dead = [p for p in panes if not p.alive]
        for pane in dead:
            self._prune(holding, pane)
        if self.relocated_into_holding:
            self.changed.add(holding.window_id)

        remaining = len(panes) - len(dead) + self.relocated_into_holding
        if remaining > 0:
            return True
        self.emit(
            Action(
                type=ActionType.KILL_WINDOW,
                description=(
                    f"Kill empty {holding.name} window (all {len(dead)} panes dead)"
                    if dead
                    else f"Kill empty {holding.name} window"
                ),
                session_name=self.session,
                window_id=holding.window_id,
                window_name=holding.name,
            )
        )
        return False

    # Step 5

    def converge_windows(self, holding_survives: bool) -> None:
        for member in self.desired.active_members:
            window = self.member_windows.get(member.name)
            if window is not None:
                self._converge(window)

        if not holding_survives:
            return
        if self.holding is not None:
            self._converge(self.holding)
        elif self.relocated_into_holding > 1:
            # Created during this plan: remain-on-exit is set at creation,
            # the layout needs settling once every relocated pane has landed.
            self.emit(self._layout_action(None, self.settings.holding_area_name))

    def _converge(self, window: ActualWindow) -> None:
        if not window.remain_on_exit:
            self.emit(
                Action(
                    type=ActionType.SET_WINDOW_OPTION,
                    description=f"Set {REMAIN_ON_EXIT_OPTION} on for {window.name}",
                    session_name=self.session,
                    window_id=window.window_id,
                    window_name=window.name,
                    option=REMAIN_ON_EXIT_OPTION,
                    value="on",
                )
            )
        pane_count = len(self.actual.panes_in(window))
        canonical = is_canonical_main_vertical(
            window.layout,
            pane_count=pane_count,
            window_width=window.width,
            main_pane_width_pct=self.settings.main_pane_width_pct,
            tolerance_cells=self.settings.tolerance_cells,
        )
        if window.window_id in self.changed or not canonical:
            self.emit(self._layout_action(window.window_id, window.name))

    def _layout_action(self, window_id: Optional[str], window_name: str) -> Action:
        return Action(
            type=ActionType.RECONCILE_LAYOUT,
            description=f"Apply {self.settings.layout_name} layout to {window_name}",
            session_name=self.session,
            window_id=window_id,
            window_name=window_name,
            layout=self.settings.layout_name,
            option="main-pane-width",
            value=self.settings.main_pane_width,
        )

    # Summary

    def summarize(self) -> tuple[WindowSummary, ...]:
        summaries: list[WindowSummary] = []
        for window in self.windows:
            panes = self.actual.panes_in(window)
            dead = sum(1 for p in panes if not p.alive)
            is_member = self.member_windows.get(window.name) is window
            if is_member:
                healthy = len(panes) == MEMBER_PANE_COUNT and dead == 0 and self._is_complete(window)
            elif window.is_holding_area:
                healthy = len(panes) >= 1 and dead == 0
            else:
                healthy = False
            summaries.append(
                WindowSummary(
                    name=window.name,
                    is_holding_area=window.is_holding_area,
                    is_member=is_member,
                    pane_count=len(panes),
                    dead_pane_count=dead,
                    healthy=healthy,
                )
            )
        return tuple(summaries)

    def build(self) -> Plan:
        self.create_session()
        self.create_windows()
        self.remove_strays()
        holding_survives = self.tidy_holding_area()
        self.converge_windows(holding_survives)
        return Plan(
            session_name=self.session,
            session_exists=self.actual.session.exists,
            window_summary=self.summarize(),
            actions=tuple(self.actions),
        )


def plan_reconciliation(
    desired: DesiredState,
    actual: ActualState,
    settings: Optional[PlannerSettings] = None,
) -> Plan:
    """Compute the ordered corrective actions for one session.

    Args:
        desired: Ledger-derived target topology
        actual: Live topology from `read_actual_state`
        settings: Holding-area name and layout parameters

    Returns:
        Immutable Plan; `plan.actions` is empty when the session has converged.

    Raises:
        PreconditionFailed: `desired` has no active members. Planning it would
            tear down every window of the session.
    """
    if not desired.active_members:
        raise PreconditionFailed(f"workshop {desired.workshop_id} has no active workbenches")
    plan = _PlanBuilder(desired, actual, settings or PlannerSettings()).build()
    logger.debug("Planned %d actions for session %s", len(plan.actions), plan.session_name)
    return plan
