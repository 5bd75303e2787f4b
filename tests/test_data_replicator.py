"""Tests for chunked row transfer.

Verifies that ``replicate_table()``:
- Issues ceil(N / B) batches and never copies more than the snapshot
- Never copies rows beyond ``snapshot_max``
- Skips failed batches and records them against the error budget
- Raises ``BudgetExceededError`` once the budget is exceeded
- Reports every batch to the observer
"""

import logging
from unittest.mock import AsyncMock

import pytest

from db_cloner.clone.data_replicator import (
    FAILURE_MESSAGE_LIMIT,
    ErrorBudget,
    ReplicationOutcome,
    replicate_table,
    truncate,
)
from db_cloner.clone.events import CloneObserver
from db_cloner.clone.planner import TablePlan
from db_cloner.errors import BudgetExceededError

from fakes import FakeAdapter, USERS_SQL


def _users_source(count: int) -> FakeAdapter:
    return FakeAdapter(
        schema={"users": USERS_SQL},
        rows={"users": [{"id": i, "name": f"user-{i}"} for i in range(1, count + 1)]},
    )


def _empty_target(**kwargs) -> FakeAdapter:
    return FakeAdapter(schema={"users": USERS_SQL}, **kwargs)


def _plan(count: int, batch_size: int, snapshot_max=None) -> TablePlan:
    return TablePlan(
        name="users",
        order_column="id",
        batch_size=batch_size,
        snapshot_count=count,
        snapshot_max=count if snapshot_max is None and count else snapshot_max,
    )


class RecordingObserver(CloneObserver):
    def __init__(self) -> None:
        self.batches: list[tuple[str, int, int]] = []
        self.failures: list[str] = []

    def on_batch(self, plan, batch_index, rows):
        self.batches.append((plan.name, batch_index, rows))

    def on_insertion_failure(self, table, message):
        self.failures.append(message)


# ============================================================================
# ErrorBudget
# ============================================================================


class TestErrorBudget:
    """Verify the budget ceiling."""

    def test_zero_budget_exceeded_by_first_failure(self) -> None:
        budget = ErrorBudget(max_allowed_errors=0)
        assert not budget.exceeded
        budget.record("boom")
        assert budget.exceeded

    def test_exceeded_only_above_ceiling(self) -> None:
        """max_allowed_errors failures are tolerated; one more is not."""
        budget = ErrorBudget(max_allowed_errors=2)
        budget.record("a")
        budget.record("b")
        assert not budget.exceeded
        budget.record("c")
        assert budget.exceeded
        assert budget.count == 3
        assert budget.messages == ["a", "b", "c"]


class TestTruncate:
    def test_short_message_unchanged(self) -> None:
        assert truncate("short", 150) == "short"

    def test_long_message_cut(self) -> None:
        message = truncate("x" * 400, FAILURE_MESSAGE_LIMIT)
        assert len(message) == FAILURE_MESSAGE_LIMIT
        assert message.endswith("...")


# ============================================================================
# Batching
# ============================================================================


class TestBatching:
    """Verify batch counts and snapshot bounds."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("count,batch_size,expected_batches", [(10, 3, 4), (9, 3, 3), (1, 1000, 1)])
    async def test_batch_count(self, count: int, batch_size: int, expected_batches: int) -> None:
        """Exactly ceil(N / B) batches are issued."""
        source, target = _users_source(count), _empty_target()

        outcome = await replicate_table(source, target, _plan(count, batch_size), ErrorBudget())

        assert outcome.batches == expected_batches
        assert outcome.inserted_rows == count
        assert [r["id"] for r in target.rows["users"]] == list(range(1, count + 1))

    @pytest.mark.asyncio
    async def test_empty_table_issues_no_reads(self) -> None:
        source, target = _users_source(0), _empty_target()

        outcome = await replicate_table(source, target, _plan(0, 100), ErrorBudget())

        assert outcome.batches == 0
        assert source.selects == []

    @pytest.mark.asyncio
    async def test_rows_beyond_snapshot_max_not_copied(self) -> None:
        """Rows inserted on the source after planning are left behind."""
        source, target = _users_source(10), _empty_target()
        plan = _plan(10, 4)
        source.rows["users"].extend({"id": i, "name": "late"} for i in range(11, 14))

        outcome = await replicate_table(source, target, plan, ErrorBudget())

        assert outcome.inserted_rows == 10
        assert max(r["id"] for r in target.rows["users"]) == 10
        assert all(s["upper_bound"] == 10 for s in source.selects)

    @pytest.mark.asyncio
    async def test_never_more_than_snapshot_count(self) -> None:
        """Rows below snapshot_max inserted late still respect the count cap."""
        source, target = _users_source(0), _empty_target()
        source.rows["users"] = [{"id": i, "name": "x"} for i in (2, 4, 6, 8)]
        plan = _plan(4, 3, snapshot_max=8)
        # A row slotted in below the bound after planning
        source.rows["users"].append({"id": 3, "name": "late"})

        outcome = await replicate_table(source, target, plan, ErrorBudget())

        assert outcome.inserted_rows == 4
        assert [s["limit"] for s in source.selects] == [3, 1]

    @pytest.mark.asyncio
    async def test_deleted_rows_stop_early(self) -> None:
        """A short page ends the table instead of reading past the end."""
        source, target = _users_source(10), _empty_target()
        plan = _plan(10, 4)
        del source.rows["users"][6:]

        outcome = await replicate_table(source, target, plan, ErrorBudget())

        assert outcome.inserted_rows == 6
        assert outcome.batches == 2

    @pytest.mark.asyncio
    async def test_offsets_advance_by_page(self) -> None:
        source, target = _users_source(7), _empty_target()

        await replicate_table(source, target, _plan(7, 3), ErrorBudget())

        assert [s["offset"] for s in source.selects] == [0, 3, 6]

    @pytest.mark.asyncio
    async def test_observer_sees_every_batch(self) -> None:
        source, target = _users_source(5), _empty_target()
        observer = RecordingObserver()

        await replicate_table(source, target, _plan(5, 2), ErrorBudget(), observer)

        assert observer.batches == [("users", 0, 2), ("users", 1, 2), ("users", 2, 1)]

    @pytest.mark.asyncio
    async def test_pages_follow_scan_order(self) -> None:
        """Rows sharing an ordering value are paged by the tiebreak column too."""
        audit_sql = "CREATE TABLE audit (ref TEXT PRIMARY KEY, created_at TEXT)"
        rows = [
            {"ref": ref, "created_at": "2024-01-01"} for ref in ("d", "b", "e", "a", "c")
        ]
        source = FakeAdapter(schema={"audit": audit_sql}, rows={"audit": rows})
        target = FakeAdapter(schema={"audit": audit_sql})
        plan = TablePlan(
            name="audit",
            order_column="created_at",
            tiebreak_columns=["ref"],
            batch_size=2,
            snapshot_count=5,
            snapshot_max="2024-01-01",
        )

        await replicate_table(source, target, plan, ErrorBudget())

        assert all(s["order_by"] == ["created_at", "ref"] for s in source.selects)
        assert [r["ref"] for r in target.rows["audit"]] == ["a", "b", "c", "d", "e"]


# ============================================================================
# Failures
# ============================================================================


class TestInsertionFailures:
    """Verify failed batches are skipped and counted."""

    @pytest.mark.asyncio
    async def test_failed_batch_skipped_within_budget(self) -> None:
        """A failed batch is recorded and the next batch still runs."""
        source = _users_source(10)
        target = _empty_target(fail_batches={"users": {1}})
        budget = ErrorBudget(max_allowed_errors=1)
        observer = RecordingObserver()

        outcome = await replicate_table(source, target, _plan(10, 4), budget, observer)

        assert outcome.batches == 3
        assert outcome.failed_batches == 1
        assert outcome.failed_rows == 4
        assert outcome.inserted_rows == 6
        assert [r["id"] for r in target.rows["users"]] == [1, 2, 3, 4, 9, 10]
        assert budget.count == 1
        assert "users" in budget.messages[0]
        assert observer.failures == budget.messages

    @pytest.mark.asyncio
    async def test_first_failure_aborts_with_zero_budget(self) -> None:
        """Default budget stops at the first failure."""
        source = _users_source(10)
        target = _empty_target(fail_batches={"users": {0}})
        budget = ErrorBudget(max_allowed_errors=0)

        with pytest.raises(BudgetExceededError) as exc_info:
            await replicate_table(source, target, _plan(10, 4), budget)

        assert len(exc_info.value.messages) == 1
        assert target.insert_calls["users"] == 1
        assert target.rows["users"] == []

    @pytest.mark.asyncio
    async def test_budget_shared_across_tables(self) -> None:
        """Failures from an earlier table count toward the ceiling."""
        budget = ErrorBudget(max_allowed_errors=1)
        budget.record("earlier failure")
        source = _users_source(4)
        target = _empty_target(fail_batches={"users": {0}})

        with pytest.raises(BudgetExceededError) as exc_info:
            await replicate_table(source, target, _plan(4, 2), budget)

        assert exc_info.value.messages[0] == "earlier failure"
        assert len(exc_info.value.messages) == 2

    @pytest.mark.asyncio
    async def test_long_failure_cut_on_console_only(
        self, caplog: pytest.LogCaptureFixture
    ) -> None:
        """The budget keeps the full error; the log line and observer get the short form."""
        cause = "duplicate key value violates unique constraint " + "x" * 400 + " END-OF-MESSAGE"
        source = _users_source(2)
        target = _empty_target()
        target.insert_many = AsyncMock(side_effect=RuntimeError(cause))
        budget = ErrorBudget(max_allowed_errors=5)
        observer = RecordingObserver()

        with caplog.at_level(logging.ERROR, logger="db_cloner.clone.data_replicator"):
            await replicate_table(source, target, _plan(2, 2), budget, observer)

        assert budget.messages[0].endswith("END-OF-MESSAGE")
        assert len(budget.messages[0]) > FAILURE_MESSAGE_LIMIT
        assert len(observer.failures[0]) == FAILURE_MESSAGE_LIMIT
        assert caplog.records[0].getMessage() == observer.failures[0]

    @pytest.mark.asyncio
    async def test_read_failure_propagates(self) -> None:
        """Errors reading the source are not counted; they are fatal."""
        source = _users_source(2)
        del source.rows["users"]
        budget = ErrorBudget(max_allowed_errors=10)

        with pytest.raises(KeyError):
            await replicate_table(source, _empty_target(), _plan(2, 2), budget)
        assert budget.count == 0


class TestReplicationOutcome:
    def test_complete(self) -> None:
        assert ReplicationOutcome(table="t", snapshot_count=3, inserted_rows=3).complete
        assert not ReplicationOutcome(
            table="t", snapshot_count=3, inserted_rows=2, failed_batches=1
        ).complete
