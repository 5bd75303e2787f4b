"""Database cloning: planning, schema replication and chunked data transfer.

Usage:
    from db_cloner.clone import clone_profiles, run_clone, CloneObserver
"""

from db_cloner.clone.data_replicator import ErrorBudget, ReplicationOutcome, replicate_table
from db_cloner.clone.events import CloneObserver
from db_cloner.clone.planner import (
    TablePlan,
    filter_tables,
    plan_tables,
    resolve_order_column,
)
from db_cloner.clone.report import CloneResult, DriftEntry, DriftReport, humanize_duration
from db_cloner.clone.runner import build_plan, clone_profiles, run_clone
from db_cloner.clone.schema_replicator import (
    create_tables,
    drop_tables,
    foreign_key_checks_disabled,
    verify_tables,
)

__all__ = [
    "run_clone",
    "clone_profiles",
    "build_plan",
    "TablePlan",
    "plan_tables",
    "filter_tables",
    "resolve_order_column",
    "ErrorBudget",
    "ReplicationOutcome",
    "replicate_table",
    "drop_tables",
    "create_tables",
    "verify_tables",
    "foreign_key_checks_disabled",
    "CloneObserver",
    "CloneResult",
    "DriftEntry",
    "DriftReport",
    "humanize_duration",
]
