"""Single-flight guard: one apply per tmux session name at a time."""

from __future__ import annotations

import fcntl
import os
import re
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from instrukt_ai_logging import get_logger

from orc.core.errors import SessionBusy

logger = get_logger(__name__)

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


def lock_path_for(session_name: str, lock_dir: str) -> Path:
    return Path(lock_dir) / f"{_UNSAFE_CHARS.sub('_', session_name)}.lock"


@contextmanager
def session_lock(session_name: str, lock_dir: str) -> Iterator[Path]:
    """Hold an exclusive advisory lock for `session_name`.

    Non-blocking: a lock held by another process raises `SessionBusy`
    immediately. The lock file stays in place; only the flock matters.

    Raises:
        SessionBusy: another apply for this session is in flight.
    """
    path = lock_path_for(session_name, lock_dir)
    path.parent.mkdir(parents=True, exist_ok=True)

    # "a+" keeps the inode stable, so the flock stays effective across processes
    handle = open(path, "a+", encoding="utf-8")
    try:
        try:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError as exc:
            handle.seek(0)
            holder = handle.read().strip() or None
            raise SessionBusy(session_name, str(path), holder) from exc

        handle.seek(0)
        handle.truncate()
        handle.write(str(os.getpid()))
        handle.flush()
        logger.debug("Acquired session lock %s", path)
        try:
            yield path
        finally:
            handle.seek(0)
            handle.truncate()
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
            logger.debug("Released session lock %s", path)
    finally:
        handle.close()
