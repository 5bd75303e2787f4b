"""Clone one database onto another.

The run is strictly sequential on one pinned connection per side:

1. Inspect the source foreign-key graph and plan every table.
2. Ask for confirmation (the target is about to be wiped).
3. Optionally disable foreign-key checks on the target.
4. Drop, recreate and verify the tables.
5. Copy each table in chunks and measure its row-count drift.
6. Re-enable foreign-key checks.

Everything before step 3 only reads, so configuration problems surface
before the target is touched.  Nothing is rolled back on a fatal error:
tables already copied stay on the target.

Usage:
    from db_cloner.clone import clone_profiles

    result = await clone_profiles("production", "staging", config, confirm=lambda plans: True)
    print(f"Cloned {len(result.plans)} tables in {result.duration}")
"""

import logging
import time
from collections.abc import Callable

from db_cloner.adapters.base import DatabaseClient
from db_cloner.clone.data_replicator import ErrorBudget, ReplicationOutcome, replicate_table
from db_cloner.clone.events import CloneObserver
from db_cloner.clone.planner import TablePlan, plan_tables
from db_cloner.clone.report import CloneResult, DriftEntry, DriftReport
from db_cloner.clone.schema_replicator import (
    create_tables,
    drop_tables,
    foreign_key_checks_disabled,
    verify_tables,
)
from db_cloner.config.models import CloneSettings, DatabaseConfig
from db_cloner.errors import BudgetExceededError, CloneCancelledError, ConfigurationError
from db_cloner.factory import open_validated_adapter
from db_cloner.logging_config import attach_failure_log
from db_cloner.schema.dialects import get_dialect
from db_cloner.schema.introspector import SchemaIntrospector

logger = logging.getLogger(__name__)

ConfirmCallback = Callable[[list[TablePlan]], bool]


async def build_plan(
    source: DatabaseClient,
    settings: CloneSettings,
) -> list[TablePlan]:
    """Inspect the source and plan the clone without touching any target.

    Raises:
        ConfigurationError: Include list or order columns misconfigured.
    """
    graph = await SchemaIntrospector(source).get_dependency_graph()

    for cycle in graph.cycles():
        logger.warning(
            "Foreign key cycle %s; creation order is best effort. "
            "Consider disable_foreign_key_checks.",
            " -> ".join(cycle),
        )

    return await plan_tables(source, graph, settings)


async def _measure_drift(
    source: DatabaseClient,
    plan: TablePlan,
    outcome: ReplicationOutcome,
) -> DriftEntry:
    current = await source.count_rows(plan.name)
    outcome.row_count_drift = current - plan.snapshot_count

    entry = DriftEntry(
        table=plan.name, snapshot_count=plan.snapshot_count, current_count=current
    )
    if entry.difference:
        logger.warning(
            "Row count of '%s' changed during the clone: %d -> %d (%+d)",
            plan.name,
            entry.snapshot_count,
            entry.current_count,
            entry.difference,
        )
    return entry


async def run_clone(
    source: DatabaseClient,
    target: DatabaseClient,
    settings: CloneSettings,
    confirm: ConfirmCallback | None = None,
    observer: CloneObserver | None = None,
) -> CloneResult:
    """Clone ``source`` onto ``target`` using two open adapters.

    Args:
        source: Adapter to copy from.  Only read.
        target: Adapter to overwrite.
        settings: The ``[clone]`` settings.
        confirm: Called with the plans before anything destructive happens;
            returning False cancels the run.  ``None`` skips the prompt.
        observer: Optional progress hooks.

    Returns:
        ``CloneResult`` of the completed run.

    Raises:
        ConfigurationError: Dialects differ or planning failed.
        CloneCancelledError: ``confirm`` returned False.
        SchemaError: A table could not be dropped, created or verified.
        BudgetExceededError: Too many failed batches.  Every recorded
            message has been written to the failure log.
    """
    observer = observer or CloneObserver()
    started = time.monotonic()

    if source.dialect_name != target.dialect_name:
        raise ConfigurationError(
            f"Source ({source.dialect_name}) and target ({target.dialect_name}) "
            f"must use the same database engine"
        )
    dialect = get_dialect(target.dialect_name)

    plans = await build_plan(source, settings)
    observer.on_plan(plans)
    logger.info("Planned %d tables", len(plans))

    if confirm is not None and not confirm(plans):
        raise CloneCancelledError("Clone cancelled; target was not modified")

    result = CloneResult(
        source=source.database_name,
        target=target.database_name,
        plans=plans,
    )
    budget = ErrorBudget(max_allowed_errors=settings.max_allowed_errors)

    try:
        async with foreign_key_checks_disabled(
            target, dialect, enabled=settings.disable_foreign_key_checks
        ):
            result.dropped_tables = await drop_tables(
                target, plans, only_cloned=settings.only_drop_cloned_tables, observer=observer
            )
            await create_tables(source, target, plans, observer=observer)
            await verify_tables(source, target, plans)

            for plan in plans:
                observer.on_table_start(plan)
                outcome = await replicate_table(source, target, plan, budget, observer)
                entry = await _measure_drift(source, plan, outcome)
                if entry.difference:
                    observer.on_drift(entry)
                result.outcomes.append(outcome)
                observer.on_table_complete(outcome)
    except BudgetExceededError as e:
        failure_logger = attach_failure_log(settings.failure_log)
        for message in e.messages:
            failure_logger.error(message)
        raise

    result.drift = DriftReport.from_outcomes(result.outcomes)
    result.failures = list(budget.messages)
    result.duration_seconds = time.monotonic() - started
    logger.info(
        "Clone finished: %d rows in %d tables (%s)",
        result.inserted_rows,
        len(result.outcomes),
        result.duration,
    )
    return result


async def clone_profiles(
    source_name: str,
    target_name: str,
    config: DatabaseConfig,
    confirm: ConfirmCallback | None = None,
    observer: CloneObserver | None = None,
) -> CloneResult:
    """Clone between two named db.toml profiles.

    Both connections are validated before planning starts and closed when
    the run ends, whatever the outcome.

    Raises:
        ConfigurationError: Same profile on both sides, unknown profile, or
            anything ``run_clone()`` raises.
        ConnectivityError: A profile cannot be reached.
    """
    if source_name == target_name:
        raise ConfigurationError("Source and target connections must be different")

    source = await open_validated_adapter(source_name, config)
    try:
        target = await open_validated_adapter(target_name, config)
        try:
            result = await run_clone(
                source, target, config.clone, confirm=confirm, observer=observer
            )
        finally:
            await target.close()
    finally:
        await source.close()

    result.source = source_name
    result.target = target_name
    return result
