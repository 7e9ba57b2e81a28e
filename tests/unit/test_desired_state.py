"""Unit tests for building and validating desired state from the ledger."""

import shutil
from datetime import datetime, timedelta, timezone
from pathlib import Path

import pytest
from git import Repo as GitRepo
from sqlmodel import Session as SqlSession
from sqlmodel import create_engine

from orc.core.errors import PreconditionFailed, TargetNotFound
from orc.core.models import DesiredMember, DesiredState
from orc.ledger import Ledger, Repo, Workbench, Workshop
from orc.reconcile.desired import build_desired_state, session_name_for, validate_desired

# git init runs a subprocess
pytestmark = [pytest.mark.unit, pytest.mark.timeout(5)]

requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git binary not installed")

T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def ledger(tmp_path: Path):
    db_path = tmp_path / "orc.db"
    store = Ledger(str(db_path), create=True)
    store.init_schema()
    yield store
    store.close()


def _insert(ledger: Ledger, *rows) -> None:
    engine = create_engine(f"sqlite:///{ledger.db_path}")
    with SqlSession(engine) as session:
        for row in rows:
            session.add(row)
        session.commit()
    engine.dispose()


def _bench(tmp_path: Path, name: str, minutes: int, status: str = "active", repo_id=None) -> Workbench:
    path = tmp_path / "benches" / name
    path.mkdir(parents=True, exist_ok=True)
    return Workbench(
        id=f"BENCH-{name}",
        workshop_id="WORK-001",
        name=name,
        path=str(path),
        repo_id=repo_id,
        status=status,
        created_at=T0 + timedelta(minutes=minutes),
    )


def test_unknown_workshop_raises_target_not_found(ledger):
    with pytest.raises(TargetNotFound, match="workshop not found: WORK-404"):
        build_desired_state(ledger, "WORK-404")


def test_members_follow_creation_order(ledger, tmp_path):
    _insert(
        ledger,
        Workshop(id="WORK-001", name="payments.v2", created_at=T0),
        _bench(tmp_path, "zeta", minutes=1),
        _bench(tmp_path, "alpha", minutes=2),
        _bench(tmp_path, "old", minutes=3, status="archived"),
    )

    desired = build_desired_state(ledger, "WORK-001")

    assert desired.session_name == "payments_v2"
    assert desired.workshop_id == "WORK-001"
    assert [m.name for m in desired.members] == ["zeta", "alpha", "old"]
    assert [m.active for m in desired.members] == [True, True, False]
    assert [m.name for m in desired.active_members] == ["zeta", "alpha"]
    assert all(m.parent_group_id == "WORK-001" for m in desired.members)


def test_member_carries_repository_path(ledger, tmp_path):
    _insert(
        ledger,
        Workshop(id="WORK-001", name="payments"),
        Repo(id="REPO-1", name="payments", local_path=str(tmp_path / "repo")),
        _bench(tmp_path, "auth", minutes=1, repo_id="REPO-1"),
    )

    desired = build_desired_state(ledger, "WORK-001")

    assert desired.members[0].repo_path == str(tmp_path / "repo")


def test_session_name_replaces_tmux_separators():
    assert session_name_for("a.b:c") == "a_b_c"
    assert session_name_for("plain") == "plain"


def _desired(*members: DesiredMember) -> DesiredState:
    return DesiredState(session_name="workshop", workshop_id="WORK-001", members=members)


def test_empty_active_set_is_rejected(make_member):
    desired = _desired(make_member("old", active=False))

    with pytest.raises(PreconditionFailed, match="has no active workbenches"):
        validate_desired(desired, "imps")


def test_missing_path_is_rejected(make_member, tmp_path):
    member = make_member("auth")
    shutil.rmtree(member.path)

    with pytest.raises(PreconditionFailed, match="worktree path does not exist for BENCH-auth"):
        validate_desired(_desired(member), "imps")


def test_file_path_is_rejected(tmp_path):
    file_path = tmp_path / "not-a-dir"
    file_path.write_text("x")
    member = DesiredMember(name="auth", path=str(file_path), id="BENCH-auth", parent_group_id="WORK-001")

    with pytest.raises(PreconditionFailed, match="not a directory"):
        validate_desired(_desired(member), "imps")


def test_inactive_member_with_missing_path_is_ignored(make_member):
    gone = make_member("gone", active=False)
    shutil.rmtree(gone.path)

    validate_desired(_desired(make_member("auth"), gone), "imps")


def test_duplicate_and_reserved_names_are_all_reported(make_member, tmp_path):
    first = make_member("auth")
    second = DesiredMember(name="auth", path=first.path, id="BENCH-auth-2", parent_group_id="WORK-001")
    reserved = make_member("imps")

    with pytest.raises(PreconditionFailed) as exc_info:
        validate_desired(_desired(first, second, reserved), "imps")

    problems = exc_info.value.problems
    assert len(problems) == 2
    assert "share the window name 'auth'" in problems[0]
    assert "reserved window name 'imps'" in problems[1]
    assert str(exc_info.value).startswith("2 precondition checks failed:")


def test_seed_window_name_is_reserved(make_member):
    with pytest.raises(PreconditionFailed, match="reserved window name 'orc-seed'"):
        validate_desired(_desired(make_member("orc-seed")), "imps")


@requires_git
def test_worktree_of_its_repository_passes(tmp_path):
    repo_dir = tmp_path / "repo"
    GitRepo.init(repo_dir)
    member = DesiredMember(
        name="auth", path=str(repo_dir), id="BENCH-auth", parent_group_id="WORK-001", repo_path=str(repo_dir)
    )

    validate_desired(_desired(member), "imps")


@requires_git
def test_worktree_of_another_repository_is_rejected(tmp_path):
    repo_dir = tmp_path / "repo"
    other_dir = tmp_path / "other"
    GitRepo.init(repo_dir)
    GitRepo.init(other_dir)
    member = DesiredMember(
        name="auth", path=str(other_dir), id="BENCH-auth", parent_group_id="WORK-001", repo_path=str(repo_dir)
    )

    with pytest.raises(PreconditionFailed, match="does not belong to repository"):
        validate_desired(_desired(member), "imps")


def test_plain_directory_with_repository_is_rejected(make_member, tmp_path):
    member = make_member("auth")
    member = DesiredMember(
        name=member.name,
        path=member.path,
        id=member.id,
        parent_group_id=member.parent_group_id,
        repo_path=str(tmp_path / "repo"),
    )

    with pytest.raises(PreconditionFailed, match="not a git working tree"):
        validate_desired(_desired(member), "imps")


def test_member_without_repository_skips_git_check(make_member):
    validate_desired(_desired(make_member("auth")), "imps")


def test_module_timeout_wins_over_unit_default(request):
    assert request.node.get_closest_marker("timeout").args == (5,)
