"""orc logging configuration.

orc uses the shared InstruktAI logging standard (`instrukt_ai_logging`).
Log level is taken from `ORC_LOG_LEVEL`; the CLI passes `--log-level` through
here before any command runs.
"""

from __future__ import annotations

import os
from typing import Optional

from instrukt_ai_logging import configure_logging


def setup_logging(level: Optional[str] = None) -> None:
    """Configure orc logging.

    Args:
        level: Optional override for `ORC_LOG_LEVEL`.
    """
    if level:
        os.environ["ORC_LOG_LEVEL"] = level

    configure_logging("orc")
