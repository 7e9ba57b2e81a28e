"""Unit tests for the `orc tmux` commands (tmux is the in-memory fake)."""

from datetime import datetime, timezone
from pathlib import Path

import pytest
from sqlmodel import Session as SqlSession
from sqlmodel import create_engine

from orc.cli import tmux_cmd
from orc.cli.main import run
from orc.ledger import Ledger, Workbench, Workshop

pytestmark = pytest.mark.unit

SESSION = "payments"


@pytest.fixture
def env(tmp_path: Path, monkeypatch, fake_tmux):
    """Config file, a seeded ledger and the fake multiplexer wired into the CLI."""
    monkeypatch.delenv("ORC_DB_PATH", raising=False)
    monkeypatch.delenv("TMUX", raising=False)
    db_path = tmp_path / "orc.db"
    config_file = tmp_path / "config.yml"
    config_file.write_text(
        f"ledger:\n  db_path: {db_path}\nlocks:\n  dir: {tmp_path / 'locks'}\n",
        encoding="utf-8",
    )

    store = Ledger(str(db_path), create=True)
    store.init_schema()
    store.close()
    engine = create_engine(f"sqlite:///{db_path}")
    benches = {}
    with SqlSession(engine) as session:
        session.add(Workshop(id="WORK-001", name=SESSION))
        for i, name in enumerate(["auth", "billing"]):
            path = tmp_path / "benches" / name
            path.mkdir(parents=True)
            benches[name] = path
            session.add(
                Workbench(
                    id=f"BENCH-{name}",
                    workshop_id="WORK-001",
                    name=name,
                    path=str(path),
                    created_at=datetime(2026, 1, 1, 12, i, tzinfo=timezone.utc),
                )
            )
        session.commit()
    engine.dispose()

    monkeypatch.setattr(tmux_cmd, "build_multiplexer", lambda _ctx: fake_tmux)
    return {"config": str(config_file), "benches": benches, "tmp": tmp_path}


def _orc(env, *args):
    return run(["--config", env["config"], *args])


def test_apply_with_yes_builds_session(env, fake_tmux, capsys):
    code = _orc(env, "tmux", "apply", "WORK-001", "--yes")

    out = capsys.readouterr().out
    assert code == 0
    assert "Session: payments (will create)" in out
    assert "✓ Applied successfully" in out
    assert "Attach with: orc tmux connect WORK-001" in out
    assert fake_tmux.window_names(SESSION) == ["auth", "billing"]
    assert fake_tmux.session_env[SESSION]["ORC_WORKSHOP_ID"] == "WORK-001"


def test_second_apply_is_a_no_op(env, fake_tmux, capsys):
    _orc(env, "tmux", "apply", "WORK-001", "--yes")
    fake_tmux.mutations.clear()
    capsys.readouterr()

    code = _orc(env, "tmux", "apply", "WORK-001")

    assert code == 0
    assert "Nothing to do." in capsys.readouterr().out
    assert fake_tmux.mutations == []


def test_declined_confirmation_changes_nothing(env, fake_tmux, capsys, monkeypatch):
    monkeypatch.setattr("builtins.input", lambda _prompt: "n")

    code = _orc(env, "tmux", "apply", "WORK-001")

    assert code == 0
    assert "Canceled." in capsys.readouterr().out
    assert fake_tmux.mutations == []


def test_confirmation_at_eof_is_a_no(env, fake_tmux, monkeypatch):
    def _eof(_prompt):
        raise EOFError

    monkeypatch.setattr("builtins.input", _eof)

    assert _orc(env, "tmux", "apply", "WORK-001") == 0
    assert fake_tmux.mutations == []


def test_no_enrich_skips_titles(env, fake_tmux):
    _orc(env, "tmux", "apply", "WORK-001", "--yes", "--no-enrich")

    assert "set_pane_title" not in fake_tmux.mutation_names()
    assert fake_tmux.bindings == {}


def test_missing_worktree_fails_before_planning(env, fake_tmux, capsys):
    env["benches"]["billing"].rmdir()

    code = _orc(env, "tmux", "apply", "WORK-001", "--yes")

    captured = capsys.readouterr()
    assert code == 1
    assert "orc error: worktree path does not exist for BENCH-billing" in captured.err
    assert "Session:" not in captured.out
    assert fake_tmux.mutations == []


def test_unknown_workshop(env, capsys):
    assert _orc(env, "tmux", "plan", "WORK-404") == 1
    assert "orc error: workshop not found: WORK-404" in capsys.readouterr().err


def test_plan_never_mutates(env, fake_tmux, capsys):
    fake_tmux.add_window(SESSION, "legacy", tags=(None,))

    code = _orc(env, "tmux", "plan", "WORK-001")

    out = capsys.readouterr().out
    assert code == 0
    assert out.startswith("orc tmux plan WORK-001")
    assert "[KillWindow] Kill window legacy (not in workshop)" in out
    assert fake_tmux.mutations == []


def test_execution_failure_exits_non_zero(env, fake_tmux, capsys):
    fake_tmux.fail_on("new_window", call_number=2)

    code = _orc(env, "tmux", "apply", "WORK-001", "--yes")

    err = capsys.readouterr().err
    assert code == 1
    assert "[CreateWindow]" in err
    assert "Re-run apply" in err
    assert fake_tmux.window_names(SESSION) == ["auth"]


def test_unreachable_tmux_is_an_error(env, fake_tmux, capsys):
    fake_tmux.available = False

    assert _orc(env, "tmux", "apply", "WORK-001", "--yes") == 1
    assert "orc error: tmux server unreachable" in capsys.readouterr().err


def test_connect_without_session(env, capsys):
    assert _orc(env, "tmux", "connect", "WORK-001") == 1
    err = capsys.readouterr().err
    assert "no tmux session found for WORK-001" in err
    assert "Run: orc tmux apply WORK-001" in err


def test_connect_attaches_to_exact_session(env, fake_tmux, monkeypatch):
    fake_tmux.add_member_window(SESSION, "auth")
    calls = []
    monkeypatch.setattr(tmux_cmd.os, "execvp", lambda binary, argv: calls.append(argv))

    assert _orc(env, "tmux", "connect", "WORK-001") == 0
    assert calls[0][1:] == ["attach-session", "-t", "=payments"]


def test_enrich_infers_workshop_from_cwd(env, fake_tmux, capsys, monkeypatch):
    fake_tmux.add_member_window(SESSION, "auth")
    monkeypatch.chdir(env["benches"]["auth"])

    code = _orc(env, "tmux", "enrich")

    out = capsys.readouterr().out
    assert code == 0
    assert "✓ Applied global bindings" in out
    assert "✓ Applied session enrichment to: payments" in out
    assert "1 windows titled, 0 unchanged" in out


def test_enrich_outside_workbench_needs_an_id(env, capsys, monkeypatch):
    monkeypatch.chdir(env["tmp"])

    assert _orc(env, "tmux", "enrich") == 1
    assert "no workshop ID provided" in capsys.readouterr().err


def test_enrich_without_session_is_skipped(env, capsys):
    assert _orc(env, "tmux", "enrich", "WORK-001") == 0
    assert "Enrichment skipped: no tmux session payments" in capsys.readouterr().out


def _point_config_at(env, db_path):
    Path(env["config"]).write_text(
        f"ledger:\n  db_path: {db_path}\nlocks:\n  dir: {env['tmp'] / 'locks'}\n",
        encoding="utf-8",
    )


def test_missing_ledger_is_reported_not_created(env, fake_tmux, capsys):
    missing = env["tmp"] / "nowhere" / "orc.db"
    _point_config_at(env, missing)

    code = _orc(env, "tmux", "apply", "WORK-001", "--yes")

    assert code == 1
    assert "orc error: ledger database not found" in capsys.readouterr().err
    assert not missing.exists()
    assert fake_tmux.mutations == []


def test_unreadable_ledger_is_reported(env, fake_tmux, capsys):
    empty = env["tmp"] / "empty.db"
    empty.write_bytes(b"")
    _point_config_at(env, empty)

    code = _orc(env, "tmux", "plan", "WORK-001")

    assert code == 1
    assert "could not be read" in capsys.readouterr().err
    assert fake_tmux.mutations == []
