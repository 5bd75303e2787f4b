"""Table planning: which tables to clone, how to chunk them, and their snapshot.

For every table that survives the include/exclude filter, the planner
fixes an ordering column, a batch size, and a snapshot of the row count
and ``max(order_column)``.  The snapshot bounds the whole data-transfer
phase: rows added to the source after planning are never copied.

Planning only reads from the source.

Usage:
    from db_cloner.clone.planner import plan_tables

    graph = await SchemaIntrospector(source).get_dependency_graph()
    plans = await plan_tables(source, graph, settings)
    for plan in plans:
        print(plan.name, plan.order_column, plan.chunk_count)
"""

import logging
import math
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, PositiveInt

from db_cloner.adapters.base import DatabaseClient
from db_cloner.config.models import CloneSettings
from db_cloner.errors import ConfigurationError, MissingOrderColumnError
from db_cloner.schema.graph import DependencyGraph

logger = logging.getLogger(__name__)

# Tried in order when no override is configured
FALLBACK_ORDER_COLUMNS: tuple[str, ...] = ("id", "created_at")


class TablePlan(BaseModel):
    """How one table will be cloned.  Read-only once planned.

    Attributes:
        name: Table name.
        order_column: Column rows are scanned in (ascending).
        batch_size: Rows per insert batch.
        snapshot_count: Row count at planning time.
        snapshot_max: ``max(order_column)`` at planning time; ``None`` for
            an empty table.
        foreign_dependencies: Tables this one references (informational).
        tiebreak_columns: Primary key columns appended to the scan order
            so rows sharing an ``order_column`` value page deterministically.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    order_column: str
    batch_size: PositiveInt
    snapshot_count: int = Field(ge=0)
    snapshot_max: Any = None
    foreign_dependencies: list[str] = Field(default_factory=list)
    tiebreak_columns: list[str] = Field(default_factory=list)

    @property
    def scan_order(self) -> list[str]:
        return [self.order_column, *self.tiebreak_columns]

    @property
    def chunk_count(self) -> int:
        """Number of batches: ``ceil(snapshot_count / batch_size)``."""
        return math.ceil(self.snapshot_count / self.batch_size)


def filter_tables(
    tables: list[str],
    include_only: list[str] | None = None,
    exclude: list[str] | None = None,
) -> list[str]:
    """Apply include/exclude lists, keeping the order of ``tables``.

    ``include_only`` takes precedence: when set, exactly those tables are
    kept and ``exclude`` is ignored.

    Raises:
        ConfigurationError: If ``include_only`` names a table that does not
            exist in ``tables``.
    """
    if include_only:
        unknown = sorted(set(include_only) - set(tables))
        if unknown:
            raise ConfigurationError(
                f"include_only_tables lists tables missing from the source: "
                f"{', '.join(unknown)}"
            )
        if exclude:
            logger.warning(
                "Both include_only_tables and exclude_tables are set; "
                "exclude_tables is ignored"
            )
        wanted = set(include_only)
        return [t for t in tables if t in wanted]

    if exclude:
        unwanted = set(exclude)
        return [t for t in tables if t not in unwanted]

    return list(tables)


def resolve_order_column(
    table: str,
    columns: set[str],
    override: str | None = None,
) -> str:
    """Pick the column used to scan ``table`` in a deterministic order.

    Preference: configured ``override`` (if it is a real column), then
    ``id``, then ``created_at``.

    Raises:
        MissingOrderColumnError: If none of the candidates exist.

    Example:
        >>> resolve_order_column("events", {"uuid", "logged_at"}, override="logged_at")
        'logged_at'
    """
    if override:
        if override in columns:
            return override
        logger.warning(
            "Order column override '%s' is not a column of '%s'; falling back",
            override,
            table,
        )

    for candidate in FALLBACK_ORDER_COLUMNS:
        if candidate in columns:
            return candidate

    raise MissingOrderColumnError(table)


async def plan_table(
    source: DatabaseClient,
    table: str,
    settings: CloneSettings,
    graph: DependencyGraph,
) -> TablePlan:
    """Plan a single table (metadata queries, then one snapshot query)."""
    columns = await source.get_column_names(table)
    order_column = resolve_order_column(
        table, columns, settings.table_order_columns.get(table)
    )
    primary_key = await source.get_primary_key(table)

    snapshot_count, snapshot_max = await source.count_and_max(table, order_column)

    return TablePlan(
        name=table,
        order_column=order_column,
        batch_size=settings.batch_size_for(table),
        snapshot_count=snapshot_count,
        snapshot_max=snapshot_max,
        foreign_dependencies=sorted(graph.dependencies(table)) if table in graph else [],
        tiebreak_columns=[c for c in primary_key if c != order_column],
    )


async def plan_tables(
    source: DatabaseClient,
    graph: DependencyGraph,
    settings: CloneSettings,
) -> list[TablePlan]:
    """Plan every table to clone, in topological (creation) order.

    Validates every table before returning so that a missing order column
    aborts the run before the target is touched.

    Raises:
        ConfigurationError: Include list misconfigured or a table has no
            order column (``MissingOrderColumnError``).
    """
    selected = filter_tables(
        graph.topological_order(),
        include_only=settings.include_only_tables,
        exclude=settings.exclude_tables,
    )

    plans: list[TablePlan] = []
    for table in selected:
        plan = await plan_table(source, table, settings, graph)
        logger.debug(
            "Planned '%s': order by %s, batch %d, %d rows (max %r)",
            plan.name,
            plan.order_column,
            plan.batch_size,
            plan.snapshot_count,
            plan.snapshot_max,
        )
        plans.append(plan)
    return plans
