"""Enricher: cosmetic pass over a workshop session.

Works on any session with the workshop's name, however it was built. Global
key bindings, a session environment variable, pane titles and a per-window
marker. Best effort: tmux being unreachable or rejecting a command is logged
and reported as skipped, never raised.
"""

from __future__ import annotations

from typing import Optional

from instrukt_ai_logging import get_logger

from orc.config.schema import OrcConfig
from orc.constants import ENRICHED_OPTION, WORKSHOP_ENV_VAR
from orc.core.errors import MultiplexerUnavailable, TmuxCommandError
from orc.core.models import EnrichReport, PaneInfo, PaneRole, WindowInfo, role_for_position
from orc.tmux.protocols import Multiplexer, OptionScope

logger = get_logger(__name__)

SESSION_TREE_FORMAT = "#{session_name} [#{ORC_WORKSHOP_ID}] - #{?#{ORC_CONTEXT},#{ORC_CONTEXT},(idle)}"


class Enricher:
    """Idempotent decoration of workshop sessions.

    Global bindings are registered once per Enricher instance; the per-window
    `@orc_enriched` marker holds a signature of the titles last applied so an
    unchanged window is not touched again.
    """

    def __init__(self, mux: Multiplexer, config: OrcConfig) -> None:
        self.mux = mux
        self.config = config
        self._bindings_done = False

    def enrich(self, session_name: str, workshop_id: str) -> EnrichReport:
        report = EnrichReport(session_name=session_name)
        try:
            if not self.mux.session_exists(session_name):
                report.skipped = True
                report.reason = f"no tmux session {session_name}"
                logger.info("Skipping enrichment: %s", report.reason)
                return report

            if self.config.enrichment.bindings and not self._bindings_done:
                self.apply_global_bindings()
                report.bindings_applied = True

            self.mux.set_environment(session_name, WORKSHOP_ENV_VAR, workshop_id)
            holding_name = self.config.holding_area.window_name
            for window in sorted(self.mux.list_windows(session_name), key=lambda w: w.index):
                if self._enrich_window(window, is_holding=window.name == holding_name):
                    report.windows_enriched.append(window.name)
                else:
                    report.windows_unchanged.append(window.name)
        except (MultiplexerUnavailable, TmuxCommandError) as exc:
            logger.warning("Enrichment of %s skipped: %s", session_name, exc)
            report.skipped = True
            report.reason = str(exc)
            return report

        logger.info(
            "Enriched %s: %d windows updated, %d unchanged",
            session_name,
            len(report.windows_enriched),
            len(report.windows_unchanged),
        )
        return report

    def title_for(self, pane: PaneInfo, position: int, untagged_are_guests: bool) -> str:
        """Pane title from its persisted role tag.

        An untagged pane is a guest when `untagged_are_guests` (holding area, or
        a window where another pane is tagged); otherwise its position decides.
        """
        role: Optional[PaneRole] = PaneRole.from_tag(pane.tag)
        if role is None:
            role = PaneRole.GUEST if untagged_are_guests else role_for_position(position)
        return self.config.panes.titles.get(role.value, role.value)

    def _enrich_window(self, window: WindowInfo, is_holding: bool) -> bool:
        panes = sorted(self.mux.list_panes(window.window_id), key=lambda p: p.index)
        guests = is_holding or any(PaneRole.from_tag(p.tag) is not None for p in panes)
        titles = [self.title_for(pane, position, guests) for position, pane in enumerate(panes)]
        signature = ",".join(f"{pane.pane_id}={title}" for pane, title in zip(panes, titles))

        if self.mux.get_option(OptionScope.WINDOW, window.window_id, ENRICHED_OPTION) == signature:
            return False

        for pane, title in zip(panes, titles):
            if pane.title != title:
                self.mux.set_pane_title(pane.pane_id, title)
        self.mux.set_option(OptionScope.WINDOW, window.window_id, ENRICHED_OPTION, signature)
        return True

    def apply_global_bindings(self) -> None:
        """Register orc's key bindings (session browser, picker, status bar popup and menu)."""
        enrichment = self.config.enrichment
        summary = f"CLICOLOR_FORCE=1 {enrichment.summary_command} | less -R"

        self.mux.bind_key("prefix", "s", ["choose-tree", "-sZ", "-F", SESSION_TREE_FORMAT])
        self.mux.bind_key("prefix", "S", ["run-shell", enrichment.session_picker_script])
        self.mux.bind_key(
            "root",
            "DoubleClick1Status",
            [
                "display-popup",
                "-E",
                "-d",
                "#{pane_current_path}",
                "-w",
                "100",
                "-h",
                "30",
                "-T",
                "ORC Summary",
                summary,
            ],
        )

        menu_items = [
            (
                "New Workbench Like This",
                "n",
                f"run-shell 'cd #{{pane_current_path}} && {enrichment.new_workbench_command}'",
            ),
            (
                "Show Summary",
                "s",
                f"display-popup -E -w 100 -h 30 -T 'ORC Summary' 'cd #{{pane_current_path}} && {summary}'",
            ),
            (
                "Archive Workbench",
                "a",
                "display-popup -E -w 80 -h 20 -T 'Archive Workbench' "
                f"'cd #{{pane_current_path}} && {enrichment.archive_workbench_command}'",
            ),
            ("", "", ""),
            ("Swap Left", "<", "swap-window -t :-1"),
            ("Swap Right", ">", "swap-window -t :+1"),
            ("#{?pane_marked,Unmark,Mark}", "m", "select-pane -m"),
            ("Kill", "X", "kill-window"),
            ("Respawn", "R", "respawn-window -k"),
            ("Rename", "r", "command-prompt -I \"#W\" \"rename-window -- '%%'\""),
            ("New Window", "c", "new-window"),
        ]
        menu = ["display-menu", "-O", "-T", " ORC ", "-x", "M", "-y", "M"]
        for label, key, command in menu_items:
            menu.extend([label, key, command])
        self.mux.bind_key("root", "MouseDown3Status", menu)

        self._bindings_done = True
        logger.debug("Applied global tmux bindings")
