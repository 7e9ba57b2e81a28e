"""tmux bridge for orc - the real Multiplexer implementation.

Every call is a blocking `subprocess.run` of the tmux binary; these calls are
the only points where an orc invocation waits on the outside world.
"""

from __future__ import annotations

import subprocess
from typing import Optional, Sequence

from instrukt_ai_logging import get_logger

from orc.core.errors import MultiplexerUnavailable, TmuxCommandError
from orc.core.models import PaneInfo, WindowInfo
from orc.tmux.protocols import OptionScope, SplitDirection

logger = get_logger(__name__)

_FIELD_SEP = "\t"

_WINDOW_FORMAT = _FIELD_SEP.join(
    [
        "#{window_index}",
        "#{window_id}",
        "#{window_name}",
        "#{window_layout}",
        "#{window_width}",
        "#{window_height}",
        "#{remain-on-exit}",
        "#{@orc_building}",
    ]
)

_PANE_FORMAT = _FIELD_SEP.join(
    [
        "#{pane_index}",
        "#{pane_id}",
        "#{pane_dead}",
        "#{@pane_role}",
        "#{pane_title}",
    ]
)

_SCOPE_FLAGS: dict[OptionScope, tuple[str, ...]] = {
    OptionScope.GLOBAL: ("-g",),
    OptionScope.SESSION: (),
    OptionScope.WINDOW: ("-w",),
    OptionScope.PANE: ("-p",),
}


class _NoServer(TmuxCommandError):
    """tmux answered, but no server is running (so there are no sessions)."""


def _is_no_server(stderr: str) -> bool:
    text = stderr.lower()
    if "no server running" in text:
        return True
    return "error connecting to" in text and "no such file or directory" in text


def _is_unreachable(stderr: str) -> bool:
    text = stderr.lower()
    return "error connecting to" in text or "server exited unexpectedly" in text or "lost server" in text


def _session_target(session: str) -> str:
    """Exact-match session target (no prefix matching)."""
    return f"={session}"


def _to_int(value: str, default: int = 0) -> int:
    try:
        return int(value)
    except ValueError:
        return default


class TmuxBridge:
    """Multiplexer backed by the tmux CLI."""

    def __init__(self, binary: str = "tmux", timeout_s: float = 10.0) -> None:
        self.binary = binary
        self.timeout_s = timeout_s

    def _run_tmux(self, *args: str) -> str:
        """Run a tmux command and return its stdout.

        Args:
            *args: tmux command arguments

        Returns:
            Command output (stdout) without the trailing newline

        Raises:
            MultiplexerUnavailable: tmux binary missing or server unreachable.
            TmuxCommandError: tmux ran and reported an error.
        """
        cmd = [self.binary, *args]
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=self.timeout_s,
                check=False,
            )
        except FileNotFoundError as exc:
            raise MultiplexerUnavailable(f"tmux binary not found: {self.binary}") from exc
        except PermissionError as exc:
            raise MultiplexerUnavailable(f"tmux binary not executable: {self.binary}") from exc
        except subprocess.TimeoutExpired as exc:
            raise TmuxCommandError(args, -1, f"timed out after {self.timeout_s:.1f}s") from exc

        if result.returncode != 0:
            stderr = result.stderr or ""
            if _is_no_server(stderr):
                raise _NoServer(args, result.returncode, stderr)
            if _is_unreachable(stderr):
                raise MultiplexerUnavailable(f"tmux server unreachable: {stderr.strip()}")
            raise TmuxCommandError(args, result.returncode, stderr)

        logger.debug("tmux %s", " ".join(args))
        return result.stdout.rstrip("\n")

    # Reads

    def session_exists(self, session: str) -> bool:
        try:
            self._run_tmux("has-session", "-t", _session_target(session))
        except _NoServer:
            return False
        except TmuxCommandError as exc:
            if "can't find session" in exc.stderr.lower():
                return False
            raise
        return True

    def list_windows(self, session: str) -> list[WindowInfo]:
        try:
            output = self._run_tmux("list-windows", "-t", _session_target(session), "-F", _WINDOW_FORMAT)
        except _NoServer:
            return []
        windows: list[WindowInfo] = []
        for line in output.split("\n"):
            if not line.strip():
                continue
            parts = line.split(_FIELD_SEP)
            if len(parts) < 8:
                logger.warning("Skipping malformed list-windows row: %r", line)
                continue
            windows.append(
                WindowInfo(
                    index=_to_int(parts[0]),
                    window_id=parts[1],
                    name=parts[2],
                    layout=parts[3],
                    width=_to_int(parts[4]),
                    height=_to_int(parts[5]),
                    remain_on_exit=parts[6].strip() == "on",
                    building=parts[7].strip() == "1",
                )
            )
        return windows

    def list_panes(self, window_id: str) -> list[PaneInfo]:
        try:
            output = self._run_tmux("list-panes", "-t", window_id, "-F", _PANE_FORMAT)
        except _NoServer:
            return []
        panes: list[PaneInfo] = []
        for line in output.split("\n"):
            if not line.strip():
                continue
            parts = line.split(_FIELD_SEP)
            if len(parts) < 5:
                logger.warning("Skipping malformed list-panes row: %r", line)
                continue
            panes.append(
                PaneInfo(
                    index=_to_int(parts[0]),
                    pane_id=parts[1],
                    dead=parts[2].strip() == "1",
                    tag=parts[3] or None,
                    title=parts[4],
                )
            )
        return panes

    def get_option(self, scope: OptionScope, target: Optional[str], key: str) -> Optional[str]:
        args = ["show-options", "-v", "-q", *_SCOPE_FLAGS[scope]]
        if scope is not OptionScope.GLOBAL and target:
            args += ["-t", self._option_target(scope, target)]
        try:
            value = self._run_tmux(*args, key)
        except _NoServer:
            return None
        return value or None

    # Mutations

    def new_session(self, session: str, start_path: str, window_name: str) -> str:
        return self._run_tmux(
            "new-session", "-d", "-P", "-F", "#{window_id}", "-s", session, "-c", start_path, "-n", window_name
        ).strip()

    def new_window(self, session: str, name: str, start_path: str) -> tuple[str, str]:
        output = self._run_tmux(
            "new-window",
            "-d",
            "-P",
            "-F",
            f"#{{window_id}}{_FIELD_SEP}#{{pane_id}}",
            "-t",
            f"{_session_target(session)}:",
            "-n",
            name,
            "-c",
            start_path,
        )
        window_id, _, pane_id = output.strip().partition(_FIELD_SEP)
        return window_id, pane_id

    def split_pane(
        self,
        pane_id: str,
        direction: SplitDirection,
        start_path: str,
        command: Optional[Sequence[str]] = None,
    ) -> str:
        flag = "-h" if direction is SplitDirection.RIGHT else "-v"
        args = ["split-window", "-d", "-P", "-F", "#{pane_id}", flag, "-t", pane_id, "-c", start_path]
        if command:
            args.extend(command)
        return self._run_tmux(*args).strip()

    def respawn_pane(self, pane_id: str, command: Sequence[str]) -> None:
        self._run_tmux("respawn-pane", "-k", "-t", pane_id, *command)

    def move_pane(self, pane_id: str, target_window_id: str) -> None:
        self._run_tmux("join-pane", "-d", "-s", pane_id, "-t", target_window_id)

    def kill_window(self, window_id: str) -> None:
        self._run_tmux("kill-window", "-t", window_id)

    def kill_pane(self, pane_id: str) -> None:
        self._run_tmux("kill-pane", "-t", pane_id)

    def select_layout(self, window_id: str, layout: str) -> None:
        self._run_tmux("select-layout", "-t", window_id, layout)

    def set_option(self, scope: OptionScope, target: Optional[str], key: str, value: str) -> None:
        args = ["set-option", *_SCOPE_FLAGS[scope]]
        if scope is not OptionScope.GLOBAL:
            if not target:
                raise ValueError(f"{scope.value} option {key} needs a target")
            args += ["-t", self._option_target(scope, target)]
        self._run_tmux(*args, key, value)

    def set_pane_title(self, pane_id: str, title: str) -> None:
        self._run_tmux("select-pane", "-t", pane_id, "-T", title)

    def set_environment(self, session: str, key: str, value: str) -> None:
        self._run_tmux("set-environment", "-t", _session_target(session), key, value)

    def bind_key(self, table: str, key: str, command: Sequence[str]) -> None:
        self._run_tmux("bind-key", "-T", table, key, *command)

    @staticmethod
    def _option_target(scope: OptionScope, target: str) -> str:
        if scope is OptionScope.SESSION:
            return _session_target(target)
        return target
