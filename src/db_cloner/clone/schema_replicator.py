"""Drop, recreate and verify tables on the target.

Tables are created in dependency order (referenced tables first) and
dropped in the reverse order.  Every failure here is fatal: there is no
point copying rows into a table that could not be created.

Usage:
    async with foreign_key_checks_disabled(target, dialect, enabled=True):
        await drop_tables(target, plans, only_cloned=False)
        await create_tables(source, target, plans)
        await verify_tables(source, target, plans)
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from db_cloner.adapters.base import DatabaseClient
from db_cloner.clone.events import CloneObserver
from db_cloner.clone.planner import TablePlan
from db_cloner.errors import SchemaError
from db_cloner.schema.comparator import compare_replicated_schema
from db_cloner.schema.dialects import Dialect, get_dialect
from db_cloner.schema.introspector import SchemaIntrospector

logger = logging.getLogger(__name__)


@asynccontextmanager
async def foreign_key_checks_disabled(
    target: DatabaseClient,
    dialect: Dialect,
    enabled: bool = True,
) -> AsyncIterator[None]:
    """Suspend foreign-key enforcement on ``target`` for the block.

    Checks are switched back on when the block exits, whether it succeeded
    or raised.  With ``enabled=False`` this is a no-op.
    """
    if not enabled:
        yield
        return

    logger.info("Disabling foreign key checks on target")
    await target.execute(dialect.disable_foreign_key_checks_sql())
    try:
        yield
    finally:
        logger.info("Re-enabling foreign key checks on target")
        await target.execute(dialect.enable_foreign_key_checks_sql())


async def drop_tables(
    target: DatabaseClient,
    plans: list[TablePlan],
    only_cloned: bool = False,
    observer: CloneObserver | None = None,
) -> list[str]:
    """Drop tables on the target before recreating them.

    Args:
        target: Target adapter.
        plans: Tables being cloned, in creation order.
        only_cloned: Drop only the planned tables (reverse plan order).
            Otherwise drop every table on the target, dependents first
            according to the target's own foreign keys.
        observer: Optional progress hooks.

    Returns:
        Table names in the order they were dropped.
    """
    dialect = get_dialect(target.dialect_name)

    if only_cloned:
        drop_order = [plan.name for plan in reversed(plans)]
    else:
        graph = await SchemaIntrospector(target).get_dependency_graph()
        drop_order = graph.drop_order()

    for table in drop_order:
        try:
            await target.execute(dialect.drop_table_sql(target.quote(table)))
        except Exception as e:
            raise SchemaError(f"Failed to drop table '{table}': {e}", table) from e
        logger.debug("Dropped '%s'", table)

    logger.info("Dropped %d tables on target", len(drop_order))
    if observer is not None:
        observer.on_tables_dropped(drop_order)
    return drop_order


async def create_tables(
    source: DatabaseClient,
    target: DatabaseClient,
    plans: list[TablePlan],
    observer: CloneObserver | None = None,
) -> None:
    """Replay each source table's creation statements on the target.

    Foreign keys the dialect defers are added after every table exists.

    Raises:
        SchemaError: If the source cannot describe a table or the target
            rejects a statement.
    """
    introspector = SchemaIntrospector(source)

    for plan in plans:
        statements = await introspector.get_creation_statements(plan.name)
        for statement in statements:
            try:
                await target.execute(statement)
            except Exception as e:
                raise SchemaError(
                    f"Failed to create table '{plan.name}': {e}", plan.name
                ) from e
        logger.debug("Created '%s'", plan.name)
        if observer is not None:
            observer.on_table_created(plan.name)

    for plan in plans:
        for statement in await introspector.get_foreign_key_statements(plan.name):
            try:
                await target.execute(statement)
            except Exception as e:
                raise SchemaError(
                    f"Failed to add foreign keys to '{plan.name}': {e}", plan.name
                ) from e


async def verify_tables(
    source: DatabaseClient,
    target: DatabaseClient,
    plans: list[TablePlan],
) -> None:
    """Check every cloned table and column now exists on the target.

    Raises:
        SchemaError: With the comparison report if anything is missing.
    """
    tables = [plan.name for plan in plans]
    source_columns = await SchemaIntrospector(source).get_column_names(tables)
    target_columns = await SchemaIntrospector(target, excluded_tables=set()).get_column_names()

    result = compare_replicated_schema(source_columns, target_columns)
    if not result.valid:
        raise SchemaError(result.format_report())
    logger.info("Verified %d tables on target", len(tables))
