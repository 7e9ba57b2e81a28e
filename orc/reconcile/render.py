"""Human-readable plan output for `orc tmux apply` and `orc tmux plan`."""

from __future__ import annotations

from orc.reconcile.planner import ActionType, Plan, WindowSummary


def _window_status(summary: WindowSummary, plan: Plan) -> str:
    killed = {a.window_name for a in plan.actions_of(ActionType.KILL_WINDOW)}
    pruned = {a.window_name for a in plan.actions_of(ActionType.PRUNE_DEAD_PANE)}
    if summary.name in killed and not summary.is_member:
        return "KILL"
    if summary.name in pruned:
        return "PRUNE"
    if summary.healthy:
        return "healthy"
    if summary.dead_pane_count:
        return "unhealthy"
    return "incomplete" if summary.is_member else "stray"


def format_plan(plan: Plan, workshop_id: str, command: str = "apply") -> str:
    """Render the plan the way the apply prompt shows it."""
    lines = [f"orc tmux {command} {workshop_id}", ""]
    state = "exists" if plan.session_exists else "will create"
    lines.append(f"Session: {plan.session_name} ({state})")

    if plan.window_summary:
        lines.append("")
        lines.append("Windows:")
        for summary in plan.window_summary:
            label = f"{summary.name} [holding area]" if summary.is_holding_area else summary.name
            dead = f", {summary.dead_pane_count} dead" if summary.dead_pane_count else ""
            lines.append(f"  {label}: {summary.pane_count} panes{dead} - {_window_status(summary, plan)}")

    if plan.is_converged:
        lines.append("")
        lines.append("Nothing to do.")
        return "\n".join(lines)

    lines.append("")
    lines.append("Actions:")
    for i, action in enumerate(plan.actions, start=1):
        lines.append(f"  {i}. [{action.type.value}] {action.description}")
    return "\n".join(lines)
