"""Progress hooks for a clone run.

``run_clone()`` reports what it is doing through a ``CloneObserver``.  The
base class does nothing; the CLI subclasses it to drive rich progress bars,
tests subclass it to record calls.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from db_cloner.clone.data_replicator import ReplicationOutcome
    from db_cloner.clone.planner import TablePlan
    from db_cloner.clone.report import DriftEntry


class CloneObserver:
    """No-op observer.  Override the hooks you need."""

    def on_plan(self, plans: list[TablePlan]) -> None:
        pass

    def on_tables_dropped(self, tables: list[str]) -> None:
        pass

    def on_table_created(self, table: str) -> None:
        pass

    def on_table_start(self, plan: TablePlan) -> None:
        pass

    def on_batch(self, plan: TablePlan, batch_index: int, rows: int) -> None:
        pass

    def on_insertion_failure(self, table: str, message: str) -> None:
        pass

    def on_table_complete(self, outcome: ReplicationOutcome) -> None:
        pass

    def on_drift(self, entry: DriftEntry) -> None:
        pass
