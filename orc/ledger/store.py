"""Read-only access to the orc ledger (SQLite via sqlmodel)."""

from __future__ import annotations

import os
from contextlib import contextmanager
from typing import Iterator, Optional

from instrukt_ai_logging import get_logger
from sqlalchemy import create_engine
from sqlalchemy import event as sa_event
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session as SqlSession
from sqlmodel import SQLModel, col, select

from orc.core.errors import LedgerUnavailable
from orc.ledger.db_models import Repo, Workbench, Workshop

logger = get_logger(__name__)


def _create_sync_engine(db_path: str) -> Engine:
    """Create a sync SQLAlchemy engine with SQLite PRAGMAs set at connect time."""
    engine = create_engine(f"sqlite:///{db_path}")

    @sa_event.listens_for(engine, "connect")
    def _set_sqlite_pragmas(dbapi_connection, _connection_record):  # type: ignore[no-untyped-def]
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA busy_timeout = 5000")  # noqa: S608
        cursor.close()

    return engine


class Ledger:
    """Workshop and workbench lookups for the tmux reconciler.

    The ledger is owned by other orc commands; opening a path that does not
    exist raises `LedgerUnavailable` instead of creating an empty database,
    unless `create` is set (fresh databases and tests).
    """

    def __init__(self, db_path: str, create: bool = False) -> None:
        if not create and not os.path.isfile(db_path):
            raise LedgerUnavailable(f"ledger database not found: {db_path}")
        self.db_path = db_path
        self._engine = _create_sync_engine(db_path)

    def init_schema(self) -> None:
        """Create the mapped tables if missing."""
        SQLModel.metadata.create_all(self._engine)

    def close(self) -> None:
        self._engine.dispose()

    @contextmanager
    def _session(self) -> Iterator[SqlSession]:
        try:
            with SqlSession(self._engine) as session:
                yield session
        except SQLAlchemyError as exc:
            logger.error("Ledger query failed on %s: %s", self.db_path, exc)
            raise LedgerUnavailable(f"ledger {self.db_path} could not be read: {exc}") from exc

    def get_workshop(self, workshop_id: str) -> Optional[Workshop]:
        with self._session() as session:
            return session.get(Workshop, workshop_id)

    def list_workbenches(self, workshop_id: str) -> list[Workbench]:
        """Workbenches of a workshop in creation order (ties broken by id)."""
        statement = (
            select(Workbench)
            .where(Workbench.workshop_id == workshop_id)
            .order_by(col(Workbench.created_at), col(Workbench.id))
        )
        with self._session() as session:
            return list(session.exec(statement).all())

    def get_repo(self, repo_id: str) -> Optional[Repo]:
        with self._session() as session:
            return session.get(Repo, repo_id)

    def find_workbench_for_path(self, path: str) -> Optional[Workbench]:
        """Workbench whose directory contains `path` (deepest match wins)."""
        target = os.path.realpath(path)
        with self._session() as session:
            workbenches = list(session.exec(select(Workbench)).all())

        best: Optional[Workbench] = None
        best_len = -1
        for workbench in workbenches:
            root = os.path.realpath(os.path.expanduser(workbench.path))
            if target != root and not target.startswith(root.rstrip(os.sep) + os.sep):
                continue
            if len(root) > best_len:
                best, best_len = workbench, len(root)
        if best is None:
            logger.debug("No workbench contains %s", target)
        return best
