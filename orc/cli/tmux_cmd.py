"""`orc tmux` commands: apply, plan, connect, enrich."""

from __future__ import annotations

import argparse
import os
import signal
from contextlib import contextmanager
from types import FrameType
from typing import Iterator, Optional

from instrukt_ai_logging import get_logger

from orc.config import ledger_db_path, lock_dir, tmux_binary
from orc.core.context import OrcContext
from orc.core.errors import OrcError, TargetNotFound
from orc.ledger import Ledger
from orc.reconcile import (
    Enricher,
    PlanExecutor,
    PlannerSettings,
    build_desired_state,
    format_plan,
    plan_reconciliation,
    read_actual_state,
    session_lock,
    validate_desired,
)
from orc.reconcile.desired import session_name_for
from orc.tmux import Multiplexer, TmuxBridge

logger = get_logger(__name__)


def build_multiplexer(ctx: OrcContext) -> Multiplexer:
    return TmuxBridge(binary=tmux_binary(ctx.config), timeout_s=ctx.config.tmux.command_timeout_s)


def open_ledger(ctx: OrcContext) -> Ledger:
    return Ledger(ledger_db_path(ctx.config))


def confirm(prompt: str) -> bool:
    try:
        answer = input(prompt).strip().lower()
    except EOFError:
        return False
    return answer in ("y", "yes")


@contextmanager
def cancel_on_sigint(ctx: OrcContext) -> Iterator[None]:
    """Turn Ctrl-C into a cancel request honoured between plan actions."""

    def _handler(_signum: int, _frame: Optional[FrameType]) -> None:
        if not ctx.cancelled:
            print("\nInterrupt received; stopping after the current step...")
        ctx.cancel()

    previous = signal.signal(signal.SIGINT, _handler)
    try:
        yield
    finally:
        signal.signal(signal.SIGINT, previous)


def register(subparsers: "argparse._SubParsersAction[argparse.ArgumentParser]") -> None:
    tmux = subparsers.add_parser("tmux", help="Reconcile workshop tmux sessions")
    commands = tmux.add_subparsers(dest="tmux_command", metavar="<command>")
    commands.required = True

    apply = commands.add_parser("apply", help="Converge the workshop session to the ledger")
    apply.add_argument("workshop_id")
    apply.add_argument("-y", "--yes", action="store_true", help="Apply without confirmation")
    apply.add_argument("--no-enrich", action="store_true", help="Skip the enrichment pass after applying")
    apply.set_defaults(handler=cmd_apply)

    plan = commands.add_parser("plan", help="Show the reconciliation plan without applying it")
    plan.add_argument("workshop_id")
    plan.set_defaults(handler=cmd_plan)

    connect = commands.add_parser("connect", help="Attach to the workshop session")
    connect.add_argument("workshop_id")
    connect.set_defaults(handler=cmd_connect)

    enrich = commands.add_parser("enrich", help="Apply titles and key bindings to a running session")
    enrich.add_argument("workshop_id", nargs="?")
    enrich.set_defaults(handler=cmd_enrich)


def cmd_apply(args: argparse.Namespace, ctx: OrcContext) -> int:
    workshop_id: str = args.workshop_id
    settings = PlannerSettings.from_config(ctx.config)

    ledger = open_ledger(ctx)
    try:
        desired = build_desired_state(ledger, workshop_id)
    finally:
        ledger.close()
    validate_desired(desired, settings.holding_area_name)

    mux = build_multiplexer(ctx)
    with session_lock(desired.session_name, lock_dir(ctx.config)):
        actual = read_actual_state(mux, desired.session_name, settings.holding_area_name)
        plan = plan_reconciliation(desired, actual, settings)
        print(format_plan(plan, workshop_id))
        if plan.is_converged:
            return 0

        if not args.yes and not confirm("\nApply? [y/n] "):
            print("Canceled.")
            return 0

        logger.info("Applying %d actions to %s (actor=%s)", len(plan.actions), plan.session_name, ctx.actor)
        with cancel_on_sigint(ctx):
            PlanExecutor(mux, ctx).execute(plan)

    print("\n✓ Applied successfully")
    if not args.no_enrich:
        report = Enricher(mux, ctx.config).enrich(desired.session_name, desired.workshop_id)
        if report.skipped:
            print(f"  Enrichment skipped: {report.reason}")
    print(f"  Attach with: orc tmux connect {workshop_id}")
    return 0


def cmd_plan(args: argparse.Namespace, ctx: OrcContext) -> int:
    workshop_id: str = args.workshop_id
    settings = PlannerSettings.from_config(ctx.config)

    ledger = open_ledger(ctx)
    try:
        desired = build_desired_state(ledger, workshop_id)
    finally:
        ledger.close()
    validate_desired(desired, settings.holding_area_name)

    actual = read_actual_state(build_multiplexer(ctx), desired.session_name, settings.holding_area_name)
    print(format_plan(plan_reconciliation(desired, actual, settings), workshop_id, command="plan"))
    return 0


def _attach_tmux(binary: str, session_name: str) -> None:
    target = f"={session_name}"
    if os.getenv("TMUX"):
        os.execvp(binary, [binary, "switch-client", "-t", target])
    os.execvp(binary, [binary, "attach-session", "-t", target])


def cmd_connect(args: argparse.Namespace, ctx: OrcContext) -> int:
    workshop_id: str = args.workshop_id
    ledger = open_ledger(ctx)
    try:
        workshop = ledger.get_workshop(workshop_id)
    finally:
        ledger.close()
    if workshop is None:
        raise TargetNotFound("workshop", workshop_id)

    session_name = session_name_for(workshop.name)
    if not build_multiplexer(ctx).session_exists(session_name):
        raise OrcError(f"no tmux session found for {workshop_id}\nRun: orc tmux apply {workshop_id}")

    _attach_tmux(tmux_binary(ctx.config), session_name)
    return 0


def cmd_enrich(args: argparse.Namespace, ctx: OrcContext) -> int:
    workshop_id: Optional[str] = args.workshop_id
    ledger = open_ledger(ctx)
    try:
        if not workshop_id:
            workbench = ledger.find_workbench_for_path(os.getcwd())
            if workbench is None:
                raise OrcError("no workshop ID provided and not in a workbench directory")
            workshop_id = workbench.workshop_id
        workshop = ledger.get_workshop(workshop_id)
    finally:
        ledger.close()
    if workshop is None:
        raise TargetNotFound("workshop", workshop_id)

    session_name = session_name_for(workshop.name)
    report = Enricher(build_multiplexer(ctx), ctx.config).enrich(session_name, workshop.id)
    if report.skipped:
        print(f"Enrichment skipped: {report.reason}")
        return 0

    if report.bindings_applied:
        print("✓ Applied global bindings")
    print(f"✓ Applied session enrichment to: {session_name}")
    print(f"  - {len(report.windows_enriched)} windows titled, {len(report.windows_unchanged)} unchanged")
    return 0
