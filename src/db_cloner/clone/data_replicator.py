"""Chunked row transfer from source to target.

Rows are read from the source in ``order_column`` order, bounded above by
the planning snapshot (``order_column <= snapshot_max``, at most
``snapshot_count`` rows), and written to the target one batch per
transaction.

A failed batch is skipped and recorded against the run-wide
``ErrorBudget``.  Once the budget is exceeded, ``BudgetExceededError`` stops
the run.  Read failures on the source propagate unchanged.

Usage:
    budget = ErrorBudget(max_allowed_errors=settings.max_allowed_errors)
    for plan in plans:
        outcome = await replicate_table(source, target, plan, budget)
        print(outcome.inserted_rows, outcome.failed_batches)
"""

import logging
from dataclasses import dataclass, field

from pydantic import BaseModel

from db_cloner.adapters.base import DatabaseClient
from db_cloner.clone.events import CloneObserver
from db_cloner.clone.planner import TablePlan
from db_cloner.errors import BudgetExceededError, InsertionError

logger = logging.getLogger(__name__)

# Per-failure messages are cut to this length on the console; the budget
# and the failure log keep the full text
FAILURE_MESSAGE_LIMIT = 150


def truncate(message: str, limit: int) -> str:
    """Cut ``message`` to ``limit`` characters, marking the cut with ``...``."""
    if len(message) <= limit:
        return message
    return message[: max(limit - 3, 0)] + "..."


@dataclass
class ErrorBudget:
    """Insertion failures allowed across the whole run.

    ``max_allowed_errors=0`` means the first failure aborts.

    Attributes:
        max_allowed_errors: Ceiling; exceeded when ``count > max_allowed_errors``.
        messages: Every recorded failure message, in order.
    """

    max_allowed_errors: int = 0
    messages: list[str] = field(default_factory=list)

    @property
    def count(self) -> int:
        return len(self.messages)

    @property
    def exceeded(self) -> bool:
        return self.count > self.max_allowed_errors

    def record(self, message: str) -> None:
        self.messages.append(message)


class ReplicationOutcome(BaseModel):
    """What happened to one table during data transfer.

    Attributes:
        table: Table name.
        snapshot_count: Rows the plan expected to copy.
        inserted_rows: Rows written to the target.
        failed_batches: Batches rejected by the target.
        failed_rows: Rows in rejected batches.
        batches: Batches issued (successful or not).
        row_count_drift: Current source count minus ``snapshot_count``,
            filled in after the table is populated.
    """

    table: str
    snapshot_count: int = 0
    inserted_rows: int = 0
    failed_batches: int = 0
    failed_rows: int = 0
    batches: int = 0
    row_count_drift: int = 0

    @property
    def complete(self) -> bool:
        return self.failed_batches == 0 and self.inserted_rows == self.snapshot_count


async def replicate_table(
    source: DatabaseClient,
    target: DatabaseClient,
    plan: TablePlan,
    budget: ErrorBudget,
    observer: CloneObserver | None = None,
) -> ReplicationOutcome:
    """Copy one planned table from ``source`` to ``target``.

    Pages are read with a running offset over ``order_column`` followed by
    the table's primary key columns, so rows that share an ordering value
    keep a stable position between pages.  A table without a primary key
    ordered by a non-unique column has no such guarantee.  Each page is
    capped at ``snapshot_count - offset`` rows.

    Args:
        source: Adapter to read rows from.
        target: Adapter to write rows to (table already created).
        plan: The table's plan.
        budget: Run-wide error budget; failures are recorded on it.
        observer: Optional progress hooks.

    Returns:
        ``ReplicationOutcome`` for the table (drift not yet measured).

    Raises:
        BudgetExceededError: When a failure pushes the budget over its
            ceiling.  The current table's remaining batches are not read.
    """
    observer = observer or CloneObserver()
    outcome = ReplicationOutcome(table=plan.name, snapshot_count=plan.snapshot_count)

    offset = 0
    batch_index = 0
    while offset < plan.snapshot_count:
        limit = min(plan.batch_size, plan.snapshot_count - offset)
        rows = await source.select(
            plan.name,
            order_by=plan.scan_order,
            upper_bound=plan.snapshot_max,
            limit=limit,
            offset=offset,
        )
        if not rows:
            break

        outcome.batches += 1
        try:
            outcome.inserted_rows += await target.insert_many(plan.name, rows)
        except Exception as e:
            error = InsertionError(plan.name, batch_index, len(rows), e)
            short_message = truncate(str(error), FAILURE_MESSAGE_LIMIT)
            logger.error(short_message)

            outcome.failed_batches += 1
            outcome.failed_rows += len(rows)
            budget.record(str(error))
            observer.on_insertion_failure(plan.name, short_message)

            if budget.exceeded:
                raise BudgetExceededError(budget.messages, budget.max_allowed_errors) from e

        observer.on_batch(plan, batch_index, len(rows))
        offset += len(rows)
        batch_index += 1

        # Rows deleted since the snapshot
        if len(rows) < limit:
            break

    logger.debug(
        "Copied '%s': %d/%d rows in %d batches (%d failed)",
        plan.name,
        outcome.inserted_rows,
        plan.snapshot_count,
        outcome.batches,
        outcome.failed_batches,
    )
    return outcome
