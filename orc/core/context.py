"""Explicit invocation context.

The CLI builds one `OrcContext` per invocation and passes it down; nothing in
orc reads the acting identity from module state.
"""

from __future__ import annotations

import getpass
import os
import threading
from dataclasses import dataclass, field

from orc.config.schema import OrcConfig
from orc.constants import ACTOR_ENV


def _default_actor() -> str:
    actor = os.getenv(ACTOR_ENV)
    if actor:
        return actor
    try:
        return getpass.getuser()
    except (KeyError, OSError):
        return "unknown"


@dataclass
class OrcContext:
    """Per-invocation state threaded through every engine call."""

    config: OrcConfig
    actor: str = field(default_factory=_default_actor)
    cancel_event: threading.Event = field(default_factory=threading.Event)

    @property
    def cancelled(self) -> bool:
        return self.cancel_event.is_set()

    def cancel(self) -> None:
        self.cancel_event.set()
