"""Pytest configuration for orc tests."""

import logging
from pathlib import Path
from typing import Callable

import instrukt_ai_logging
import pytest


def _noop_configure_logging(*_args, **_kwargs):  # type: ignore[no-untyped-def]
    return None


instrukt_ai_logging.configure_logging = _noop_configure_logging  # type: ignore[assignment]
logging.getLogger("orc").handlers.clear()
logging.getLogger().handlers.clear()

from orc.config.schema import OrcConfig
from orc.core.context import OrcContext
from orc.core.models import DesiredMember, DesiredState
from tests.fake_tmux import FakeTmux


def pytest_collection_modifyitems(config, items):
    """Set per-marker timeouts (unit=1s, integration=5s) unless a test sets its own."""
    for item in items:
        if item.get_closest_marker("timeout") is not None:
            continue
        if "unit" in item.keywords:
            item.add_marker(pytest.mark.timeout(1))
        elif "integration" in item.keywords:
            item.add_marker(pytest.mark.timeout(5))


@pytest.fixture
def fake_tmux() -> FakeTmux:
    return FakeTmux()


@pytest.fixture
def orc_config(tmp_path: Path) -> OrcConfig:
    return OrcConfig.model_validate(
        {
            "ledger": {"db_path": str(tmp_path / "orc.db")},
            "locks": {"dir": str(tmp_path / "locks")},
        }
    )


@pytest.fixture
def ctx(orc_config: OrcConfig) -> OrcContext:
    return OrcContext(config=orc_config, actor="tester")


@pytest.fixture
def make_member(tmp_path: Path) -> Callable[..., DesiredMember]:
    """Build a DesiredMember rooted in a real directory under tmp_path."""

    def _make(name: str, active: bool = True, workshop_id: str = "WORK-001") -> DesiredMember:
        path = tmp_path / "benches" / name
        path.mkdir(parents=True, exist_ok=True)
        return DesiredMember(
            name=name,
            path=str(path),
            id=f"BENCH-{name}",
            parent_group_id=workshop_id,
            active=active,
        )

    return _make


@pytest.fixture
def make_desired(make_member: Callable[..., DesiredMember]) -> Callable[..., DesiredState]:
    """Desired state for session "workshop" from window names; names prefixed with '-' are inactive."""

    def _make(*names: str, session_name: str = "workshop") -> DesiredState:
        members = tuple(make_member(n.lstrip("-"), active=not n.startswith("-")) for n in names)
        return DesiredState(session_name=session_name, workshop_id="WORK-001", members=members)

    return _make
