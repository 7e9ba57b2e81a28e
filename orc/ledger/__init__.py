"""Ledger access (workshops, workbenches, repos)."""

from orc.ledger.db_models import Repo, Workbench, Workshop
from orc.ledger.store import Ledger

__all__ = ["Ledger", "Repo", "Workbench", "Workshop"]
