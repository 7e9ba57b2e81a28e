"""tmux control surface used by the reconciliation engine."""

from orc.tmux.bridge import TmuxBridge
from orc.tmux.protocols import Multiplexer, OptionScope, SplitDirection

__all__ = ["Multiplexer", "OptionScope", "SplitDirection", "TmuxBridge"]
