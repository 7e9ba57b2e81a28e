"""orc command-line entry point."""

from __future__ import annotations

import argparse
import sys
from pathlib import Path
from typing import Callable, Optional, Sequence

from instrukt_ai_logging import get_logger

from orc import __version__
from orc.cli import tmux_cmd
from orc.config import load_config
from orc.core.context import OrcContext
from orc.core.errors import OrcError
from orc.logging_config import setup_logging

logger = get_logger(__name__)

Handler = Callable[[argparse.Namespace, OrcContext], int]


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="orc", description="Orchestrate agent workbenches in tmux.")
    parser.add_argument("--version", action="version", version=f"orc {__version__}")
    parser.add_argument("--config", type=Path, default=None, help="Path to config.yml")
    parser.add_argument("--log-level", default=None, help="Override ORC_LOG_LEVEL")
    subparsers = parser.add_subparsers(dest="command", metavar="<command>")
    subparsers.required = True
    tmux_cmd.register(subparsers)
    return parser


def run(argv: Optional[Sequence[str]] = None) -> int:
    """Parse arguments, build the invocation context and dispatch.

    Returns the process exit code. User-facing failures are printed as
    `orc error: ...` and map to 1.
    """
    args = build_parser().parse_args(argv)
    setup_logging(args.log_level)

    try:
        ctx = OrcContext(config=load_config(args.config))
        handler: Handler = args.handler
        return handler(args, ctx)
    except OrcError as exc:
        logger.debug("Command failed: %s", exc)
        sys.stderr.write(f"orc error: {exc}\n")
        return 1


def main() -> None:
    try:
        sys.exit(run())
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
