"""Runtime State Reader: snapshot the live tmux topology of one session."""

from __future__ import annotations

from instrukt_ai_logging import get_logger

from orc.core.models import ActualPane, ActualSession, ActualState, ActualWindow, PaneRole, WindowRole, role_for_position
from orc.tmux.protocols import Multiplexer

logger = get_logger(__name__)


def read_actual_state(mux: Multiplexer, session_name: str, holding_area_name: str) -> ActualState:
    """Read windows and panes of `session_name`.

    An absent session (or no tmux server at all) is a normal result with
    `exists=False`. Only the lowest-index window named `holding_area_name` is
    the holding area; any later window with that name reads as an ordinary
    window so the planner can fold it in.

    Untagged panes are guests in the holding area and in any window where
    another pane carries a role tag. Only in a fully untagged window does
    the positional heuristic apply.

    Raises:
        MultiplexerUnavailable: tmux cannot be reached.
    """
    if not mux.session_exists(session_name):
        logger.debug("Session %s does not exist", session_name)
        return ActualState.absent(session_name)

    windows: list[ActualWindow] = []
    panes: list[ActualPane] = []
    holding_area_seen = False

    for info in sorted(mux.list_windows(session_name), key=lambda w: w.index):
        is_holding = info.name == holding_area_name and not holding_area_seen
        holding_area_seen = holding_area_seen or is_holding
        window = ActualWindow(
            index=info.index,
            window_id=info.window_id,
            name=info.name,
            role=WindowRole.HOLDING_AREA if is_holding else WindowRole.MEMBER,
            layout=info.layout,
            width=info.width,
            height=info.height,
            remain_on_exit=info.remain_on_exit,
            building=info.building,
        )
        windows.append(window)

        window_panes = sorted(mux.list_panes(info.window_id), key=lambda p: p.index)
        # Position only means something in a window nobody has tagged yet.
        untagged_are_guests = is_holding or any(PaneRole.from_tag(p.tag) is not None for p in window_panes)
        for position, pane in enumerate(window_panes):
            tagged_role = PaneRole.from_tag(pane.tag)
            if tagged_role is not None:
                role = tagged_role
            elif untagged_are_guests:
                role = PaneRole.GUEST
            else:
                role = role_for_position(position)
            panes.append(
                ActualPane(
                    index=position,
                    window_index=info.index,
                    window_id=info.window_id,
                    pane_id=pane.pane_id,
                    alive=not pane.dead,
                    role=role,
                    tagged=tagged_role is not None,
                )
            )

    logger.debug("Read session %s: %d windows, %d panes", session_name, len(windows), len(panes))
    return ActualState(
        session=ActualSession(name=session_name, exists=True),
        windows=tuple(windows),
        panes=tuple(panes),
    )
