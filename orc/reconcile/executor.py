"""Executor: apply a Plan against the live multiplexer, in order.

Each action is verified before the next one starts, since later actions rely
on the topology earlier ones produce. The first failure stops execution with
`ActionExecutionFailed`; there is no rollback. Re-running apply computes a
fresh plan holding only the unmet actions.
"""

from __future__ import annotations

import os
import shlex
from dataclasses import dataclass, field
from typing import Callable, Optional

from instrukt_ai_logging import get_logger

from orc.constants import (
    BUILDING_OPTION,
    MAIN_PANE_WIDTH_OPTION,
    MEMBER_PANE_COUNT,
    PANE_BENCH_OPTION,
    PANE_ROLE_OPTION,
    PANE_WORKSHOP_OPTION,
    REMAIN_ON_EXIT_OPTION,
    SEED_WINDOW_NAME,
)
from orc.core.context import OrcContext
from orc.core.errors import (
    ActionExecutionFailed,
    ActionNotVerified,
    ApplyCancelled,
    MultiplexerUnavailable,
    TmuxCommandError,
)
from orc.core.models import PaneInfo, PaneRole, WindowInfo
from orc.reconcile.planner import Action, ActionType, Plan, PlannerSettings
from orc.tmux.protocols import Multiplexer, OptionScope, SplitDirection

logger = get_logger(__name__)


@dataclass
class ExecutionReport:
    session_name: str
    total: int
    completed: list[Action] = field(default_factory=list)

    @property
    def applied(self) -> int:
        return len(self.completed)


@dataclass(frozen=True)
class _PaneLocation:
    window: WindowInfo
    pane: PaneInfo


class PlanExecutor:
    """Sequential, verifying plan runner."""

    def __init__(self, mux: Multiplexer, ctx: OrcContext) -> None:
        self.mux = mux
        self.ctx = ctx
        self.settings = PlannerSettings.from_config(ctx.config)
        panes = ctx.config.panes
        self._editor_command = shlex.split(panes.editor_command)
        self._agent_command = shlex.split(panes.agent_command)
        self._shell_command = shlex.split(panes.shell_command) if panes.shell_command else None
        self._handlers: dict[ActionType, Callable[[Action], None]] = {
            ActionType.CREATE_SESSION: self._create_session,
            ActionType.CREATE_WINDOW: self._create_window,
            ActionType.RELOCATE_PANE: self._relocate_pane,
            ActionType.PRUNE_DEAD_PANE: self._prune_dead_pane,
            ActionType.KILL_WINDOW: self._kill_window,
            ActionType.RECONCILE_LAYOUT: self._reconcile_layout,
            ActionType.SET_WINDOW_OPTION: self._set_window_option,
        }

    def execute(self, plan: Plan) -> ExecutionReport:
        """Apply every action of `plan` in order.

        Raises:
            ApplyCancelled: cancellation was requested between two actions.
            ActionExecutionFailed: an action failed or could not be verified.
        """
        total = len(plan.actions)
        report = ExecutionReport(session_name=plan.session_name, total=total)
        for index, action in enumerate(plan.actions):
            if self.ctx.cancelled:
                logger.warning("Apply of %s cancelled after %d/%d actions", plan.session_name, index, total)
                raise ApplyCancelled(index, total)

            logger.info("[%d/%d] %s", index + 1, total, action.description)
            try:
                self._handlers[action.type](action)
            except (TmuxCommandError, MultiplexerUnavailable, ActionNotVerified) as exc:
                logger.error("Action %d (%s) failed: %s", index + 1, action.type.value, exc)
                raise ActionExecutionFailed(index, action, exc) from exc
            report.completed.append(action)

        logger.info("Applied %d actions to session %s", total, plan.session_name)
        return report

    # Lookups

    def _windows(self, session: str) -> list[WindowInfo]:
        return sorted(self.mux.list_windows(session), key=lambda w: w.index)

    def _find_window(self, session: str, window_id: Optional[str], name: Optional[str]) -> Optional[WindowInfo]:
        for window in self._windows(session):
            if window_id is not None and window.window_id == window_id:
                return window
            if window_id is None and name is not None and window.name == name:
                return window
        return None

    def _locate_pane(self, session: str, pane_id: str) -> Optional[_PaneLocation]:
        for window in self._windows(session):
            for pane in self.mux.list_panes(window.window_id):
                if pane.pane_id == pane_id:
                    return _PaneLocation(window=window, pane=pane)
        return None

    def _require_window(self, action: Action) -> WindowInfo:
        window = self._find_window(action.session_name, action.window_id, action.window_name)
        if window is None:
            raise ActionNotVerified(f"window {action.window_name or action.window_id} no longer exists")
        return window

    # Handlers

    def _create_session(self, action: Action) -> None:
        session = action.session_name
        if self.mux.session_exists(session):
            logger.info("Session %s already exists", session)
            return
        start_path = action.start_path or os.path.expanduser("~")
        self.mux.new_session(session, start_path, SEED_WINDOW_NAME)
        if not self.mux.session_exists(session):
            raise ActionNotVerified(f"session {session} was not created")

    def _create_window(self, action: Action) -> None:
        member = action.member
        if member is None:
            raise ValueError("CreateWindow action without a member")
        session = action.session_name
        path = member.path

        window_id, editor_pane = self.mux.new_window(session, member.name, path)
        self.mux.set_option(OptionScope.WINDOW, window_id, BUILDING_OPTION, "1")
        self.mux.set_option(OptionScope.WINDOW, window_id, REMAIN_ON_EXIT_OPTION, "on")
        self.mux.respawn_pane(editor_pane, self._editor_command)
        agent_pane = self.mux.split_pane(editor_pane, SplitDirection.RIGHT, path, self._agent_command)
        shell_pane = self.mux.split_pane(agent_pane, SplitDirection.BELOW, path, self._shell_command)

        # main-pane-width is read when the layout is selected, so it goes first.
        self.mux.set_option(OptionScope.WINDOW, window_id, MAIN_PANE_WIDTH_OPTION, self.settings.main_pane_width)
        self.mux.select_layout(window_id, self.settings.layout_name)

        for pane_id, role in (
            (editor_pane, PaneRole.EDITOR),
            (agent_pane, PaneRole.AGENT),
            (shell_pane, PaneRole.SHELL),
        ):
            self.mux.set_option(OptionScope.PANE, pane_id, PANE_ROLE_OPTION, role.value)
            self.mux.set_option(OptionScope.PANE, pane_id, PANE_BENCH_OPTION, member.id)
            self.mux.set_option(OptionScope.PANE, pane_id, PANE_WORKSHOP_OPTION, member.parent_group_id)

        for window in self._windows(session):
            if window.name == SEED_WINDOW_NAME:
                logger.debug("Removing seed window %s of %s", window.window_id, session)
                self.mux.kill_window(window.window_id)

        tags = [p.tag for p in self.mux.list_panes(window_id)]
        expected = [PaneRole.EDITOR.value, PaneRole.AGENT.value, PaneRole.SHELL.value]
        if len(tags) != MEMBER_PANE_COUNT or sorted(t or "" for t in tags) != sorted(expected):
            raise ActionNotVerified(f"window {member.name} has panes {tags}, expected {expected}")
        self.mux.set_option(OptionScope.WINDOW, window_id, BUILDING_OPTION, "0")

    def _relocate_pane(self, action: Action) -> None:
        session = action.session_name
        pane_id = action.pane_id or ""
        holding_name = action.target_window_name or self.settings.holding_area_name

        location = self._locate_pane(session, pane_id)
        if location is None:
            logger.warning("Pane %s is gone; nothing to relocate", pane_id)
            return

        holding = self._find_window(session, None, holding_name)
        if holding is not None and location.window.window_id == holding.window_id:
            return
        if holding is None:
            start_path = action.start_path or os.path.expanduser("~")
            holding_id, placeholder = self.mux.new_window(session, holding_name, start_path)
            self.mux.set_option(OptionScope.WINDOW, holding_id, REMAIN_ON_EXIT_OPTION, "on")
            self.mux.move_pane(pane_id, holding_id)
            self.mux.kill_pane(placeholder)
        else:
            holding_id = holding.window_id
            self.mux.move_pane(pane_id, holding_id)

        moved = self._locate_pane(session, pane_id)
        if moved is None or moved.window.window_id != holding_id:
            raise ActionNotVerified(f"pane {pane_id} did not arrive in {holding_name}")

    def _prune_dead_pane(self, action: Action) -> None:
        pane_id = action.pane_id or ""
        location = self._locate_pane(action.session_name, pane_id)
        if location is None:
            logger.debug("Pane %s already gone", pane_id)
            return
        if not location.pane.dead:
            raise ActionNotVerified(f"pane {pane_id} in {location.window.name} is alive again; refusing to kill it")
        self.mux.kill_pane(pane_id)
        if self._locate_pane(action.session_name, pane_id) is not None:
            raise ActionNotVerified(f"pane {pane_id} still exists")

    def _kill_window(self, action: Action) -> None:
        session = action.session_name
        window = self._find_window(session, action.window_id, None if action.window_id else action.window_name)
        if window is None:
            logger.debug("Window %s already gone", action.window_name)
            return
        if window.name != SEED_WINDOW_NAME:
            alive = [p.pane_id for p in self.mux.list_panes(window.window_id) if not p.dead]
            if alive:
                raise ActionNotVerified(
                    f"window {window.name} has live panes not covered by the plan: {', '.join(alive)}"
                )
        self.mux.kill_window(window.window_id)
        if self._find_window(session, window.window_id, None) is not None:
            raise ActionNotVerified(f"window {window.name} still exists")

    def _reconcile_layout(self, action: Action) -> None:
        window = self._require_window(action)
        width = action.value or self.settings.main_pane_width
        self.mux.set_option(OptionScope.WINDOW, window.window_id, MAIN_PANE_WIDTH_OPTION, width)
        self.mux.select_layout(window.window_id, action.layout or self.settings.layout_name)

    def _set_window_option(self, action: Action) -> None:
        if not action.option or action.value is None:
            raise ValueError("SetWindowOption action without option/value")
        window = self._require_window(action)
        self.mux.set_option(OptionScope.WINDOW, window.window_id, action.option, action.value)
        current = self.mux.get_option(OptionScope.WINDOW, window.window_id, action.option)
        if current != action.value:
            raise ActionNotVerified(f"{action.option} on {window.name} is {current!r}, expected {action.value!r}")
