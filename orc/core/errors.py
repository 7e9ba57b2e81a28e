"""Error taxonomy for orc.

Every failure the CLI reports to a user is an `OrcError`; anything else is a
bug and propagates with its traceback.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Optional, Sequence

if TYPE_CHECKING:
    from orc.reconcile.planner import Action


class OrcError(Exception):
    """Base class for user-facing orc failures."""


class ConfigError(OrcError):
    """config.yml exists but is not valid."""


class TargetNotFound(OrcError):
    """The workshop (or workbench) record backing a target does not exist."""

    def __init__(self, kind: str, identifier: str) -> None:
        self.kind = kind
        self.identifier = identifier
        super().__init__(f"{kind} not found: {identifier}")


class PreconditionFailed(OrcError):
    """Desired state cannot be planned (empty set, missing or invalid paths).

    Raised before any tmux call, so failing here never leaves partial state.
    """

    def __init__(self, message: str, problems: Sequence[str] = ()) -> None:
        self.problems = list(problems)
        super().__init__(message)


class LedgerUnavailable(OrcError):
    """The ledger database is missing or cannot be read."""


class MultiplexerUnavailable(OrcError):
    """tmux cannot be reached at all (binary missing, socket unusable)."""


class TmuxCommandError(OrcError):
    """A single tmux invocation exited non-zero."""

    def __init__(self, args: Sequence[str], returncode: int, stderr: str) -> None:
        self.args_list = list(args)
        self.returncode = returncode
        self.stderr = stderr.strip()
        detail = self.stderr or f"exit status {returncode}"
        super().__init__(f"tmux {' '.join(self.args_list)}: {detail}")


class ActionNotVerified(OrcError):
    """tmux accepted the commands but the expected state did not appear."""


class SessionBusy(OrcError):
    """Another apply holds the lock for this session."""

    def __init__(self, session_name: str, lock_path: str, holder_pid: Optional[str] = None) -> None:
        self.session_name = session_name
        self.lock_path = lock_path
        self.holder_pid = holder_pid
        holder = f" (PID: {holder_pid})" if holder_pid else ""
        super().__init__(
            f"Another apply is already running for session {session_name}{holder}. "
            f"Wait for it to finish or remove {lock_path} if it is stale."
        )


class ActionExecutionFailed(OrcError):
    """One plan action failed; execution stopped there."""

    def __init__(self, index: int, action: "Action", cause: Exception) -> None:
        self.index = index
        self.action = action
        self.cause = cause
        super().__init__(
            f"step {index + 1} [{action.type.value}] {action.description} failed: {cause}\n"
            "Re-run apply to converge the remaining steps."
        )


class ApplyCancelled(OrcError):
    """Execution was interrupted between two actions."""

    def __init__(self, completed: int, total: int) -> None:
        self.completed = completed
        self.total = total
        super().__init__(
            f"apply interrupted after {completed} of {total} steps. Re-run apply to converge the remaining steps."
        )
