"""SQLModel definitions for the orc ledger tables the reconciler reads.

These models mirror the SQLite schema for ORM usage. Only the columns the
tmux reconciler consumes are mapped; the ledger owns the rest.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class Workshop(SQLModel, table=True):
    """workshops table."""

    __tablename__ = "workshops"
    __table_args__ = {"extend_existing": True}

    id: str = Field(primary_key=True)
    name: str
    status: str = "active"
    created_at: Optional[datetime] = None


class Repo(SQLModel, table=True):
    """repos table."""

    __tablename__ = "repos"
    __table_args__ = {"extend_existing": True}

    id: str = Field(primary_key=True)
    name: str
    local_path: Optional[str] = None


class Workbench(SQLModel, table=True):
    """workbenches table."""

    __tablename__ = "workbenches"
    __table_args__ = {"extend_existing": True}

    id: str = Field(primary_key=True)
    workshop_id: str = Field(foreign_key="workshops.id", index=True)
    name: str
    path: str = Field(unique=True)
    repo_id: Optional[str] = Field(default=None, foreign_key="repos.id")
    status: str = "active"
    created_at: Optional[datetime] = None
