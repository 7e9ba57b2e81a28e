"""Session reconciliation engine.

read_actual_state -> plan_reconciliation -> PlanExecutor.execute -> Enricher.enrich
"""

from orc.reconcile.desired import build_desired_state, validate_desired
from orc.reconcile.enricher import Enricher
from orc.reconcile.executor import ExecutionReport, PlanExecutor
from orc.reconcile.locking import session_lock
from orc.reconcile.planner import Action, ActionType, Plan, PlannerSettings, WindowSummary, plan_reconciliation
from orc.reconcile.reader import read_actual_state
from orc.reconcile.render import format_plan

__all__ = [
    "Action",
    "ActionType",
    "Enricher",
    "ExecutionReport",
    "Plan",
    "PlanExecutor",
    "PlannerSettings",
    "WindowSummary",
    "build_desired_state",
    "format_plan",
    "plan_reconciliation",
    "read_actual_state",
    "session_lock",
    "validate_desired",
]
