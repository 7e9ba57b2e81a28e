"""Desired State Builder: project ledger records into reconciler input.

Also owns the precondition checks that must pass before planning. They run
before any tmux call, so a failure here never leaves a session half-built.
"""

from __future__ import annotations

import os
from collections import Counter
from typing import Optional

from git import Repo
from git.exc import GitCommandError, InvalidGitRepositoryError, NoSuchPathError
from instrukt_ai_logging import get_logger

from orc.constants import SEED_WINDOW_NAME
from orc.core.errors import PreconditionFailed, TargetNotFound
from orc.core.models import DesiredMember, DesiredState
from orc.ledger import Ledger
from orc.utils import expand_path

logger = get_logger(__name__)

ACTIVE_STATUS = "active"


def session_name_for(workshop_name: str) -> str:
    """tmux session name for a workshop (tmux rewrites '.' and ':' itself)."""
    return workshop_name.replace(".", "_").replace(":", "_")


def build_desired_state(ledger: Ledger, workshop_id: str) -> DesiredState:
    """Build the desired topology of a workshop's session from the ledger.

    Raises:
        TargetNotFound: the workshop does not exist.
    """
    workshop = ledger.get_workshop(workshop_id)
    if workshop is None:
        raise TargetNotFound("workshop", workshop_id)

    repo_paths: dict[str, Optional[str]] = {}
    members: list[DesiredMember] = []
    for workbench in ledger.list_workbenches(workshop.id):
        repo_path: Optional[str] = None
        if workbench.repo_id:
            if workbench.repo_id not in repo_paths:
                repo = ledger.get_repo(workbench.repo_id)
                repo_paths[workbench.repo_id] = repo.local_path if repo and repo.local_path else None
            repo_path = repo_paths[workbench.repo_id]
        members.append(
            DesiredMember(
                name=workbench.name,
                path=expand_path(workbench.path),
                id=workbench.id,
                parent_group_id=workshop.id,
                active=workbench.status == ACTIVE_STATUS,
                repo_path=expand_path(repo_path) if repo_path else None,
            )
        )

    return DesiredState(
        session_name=session_name_for(workshop.name),
        workshop_id=workshop.id,
        members=tuple(members),
    )


def _git_common_dir(path: str) -> str:
    return os.path.realpath(Repo(path).common_dir)


def _check_repository(member: DesiredMember) -> Optional[str]:
    """Problem text when the member's path is not a working tree of its repository."""
    if not member.repo_path:
        return None
    try:
        worktree_common = _git_common_dir(member.path)
    except (InvalidGitRepositoryError, NoSuchPathError):
        return f"worktree path is not a git working tree for {member.id}: {member.path}"
    try:
        repo_common = _git_common_dir(member.repo_path)
    except (InvalidGitRepositoryError, NoSuchPathError, GitCommandError):
        return f"repository path is not a git repository for {member.id}: {member.repo_path}"
    if worktree_common != repo_common:
        return f"worktree {member.path} for {member.id} does not belong to repository {member.repo_path}"
    return None


def validate_desired(desired: DesiredState, holding_area_name: str) -> None:
    """Reject desired states the planner must never see.

    Raises:
        PreconditionFailed: empty active set, duplicate or reserved window
            names, missing or non-directory paths, or a path that is not a
            working tree of the member's repository.
    """
    active = desired.active_members
    if not active:
        raise PreconditionFailed(f"workshop {desired.workshop_id} has no active workbenches")

    problems: list[str] = []
    counts = Counter(m.name for m in active)
    for name, count in sorted(counts.items()):
        if count > 1:
            problems.append(f"{count} active workbenches share the window name {name!r}")

    for member in active:
        if member.name in (holding_area_name, SEED_WINDOW_NAME):
            problems.append(f"workbench {member.id} uses the reserved window name {member.name!r}")
        if not os.path.exists(member.path):
            problems.append(f"worktree path does not exist for {member.id}: {member.path}")
            continue
        if not os.path.isdir(member.path):
            problems.append(f"worktree path is not a directory for {member.id}: {member.path}")
            continue
        repo_problem = _check_repository(member)
        if repo_problem:
            problems.append(repo_problem)

    if not problems:
        return
    for problem in problems:
        logger.warning("Precondition failed for %s: %s", desired.session_name, problem)
    if len(problems) == 1:
        raise PreconditionFailed(problems[0], problems)
    detail = "\n".join(f"  - {p}" for p in problems)
    raise PreconditionFailed(f"{len(problems)} precondition checks failed:\n{detail}", problems)
