"""Database client protocol definition.

Defines the ``DatabaseClient`` Protocol that the cloner talks to.  All I/O
methods are ``async def``; ``quote()`` and ``dialect_name`` are plain
attributes of the underlying engine.

Usage:
    from db_cloner.adapters.base import DatabaseClient

    async def copy_first_page(source: DatabaseClient, target: DatabaseClient) -> None:
        rows = await source.select("users", "*", order_by="id", limit=100)
        await target.insert_many("users", rows)
"""

from collections.abc import Callable
from typing import Any, Protocol, TypeVar

T = TypeVar("T")


class DatabaseClient(Protocol):
    """Database client interface that all adapters must implement.

    Implementations pin a single connection for their lifetime so that
    session-level settings (e.g. disabled foreign-key checks) apply to
    every statement issued through the client.
    """

    @property
    def dialect_name(self) -> str:
        """SQLAlchemy dialect name (``"mysql"``, ``"postgresql"``, ``"sqlite"``)."""
        ...

    @property
    def database_name(self) -> str | None:
        """Database name from the connection URL, if any."""
        ...

    def quote(self, identifier: str) -> str:
        """Quote a table or column name for this dialect."""
        ...

    async def select(
        self,
        table: str,
        columns: str = "*",
        filters: dict[str, Any] | None = None,
        order_by: str | list[str] | None = None,
        upper_bound: Any = None,
        limit: int | None = None,
        offset: int | None = None,
    ) -> list[dict]:
        """Select rows from table.

        Args:
            table: Table name (quoted by the adapter).
            columns: Raw column list (e.g. ``"*"`` or ``"id, name"``).
            filters: Optional dict of column=value filters (AND).
            order_by: Optional column, or columns, to sort ascending by.
            upper_bound: When not ``None``, only rows whose first
                ``order_by`` column is ``<= upper_bound`` are returned.
                Requires ``order_by``.
            limit: Maximum number of rows.
            offset: Number of rows to skip.

        Returns:
            List of dicts, one per row.

        Example:
            rows = await client.select(
                "orders", order_by="id", upper_bound=5000, limit=1000, offset=2000,
            )
        """
        ...

    async def insert_many(self, table: str, rows: list[dict]) -> int:
        """Insert rows as one batch in one transaction.

        Either every row is written or none is.

        Returns:
            Number of rows inserted.
        """
        ...

    async def execute(self, sql: str, params: dict | None = None) -> None:
        """Execute a raw SQL statement (DDL, session settings, etc.)."""
        ...

    async def fetch_all(self, sql: str, params: dict | None = None) -> list[dict]:
        """Run a raw query and return rows as dicts."""
        ...

    async def count_rows(self, table: str) -> int:
        """Return ``count(*)`` of a table."""
        ...

    async def count_and_max(self, table: str, column: str) -> tuple[int, Any]:
        """Return ``(count(*), max(column))`` from a single statement."""
        ...

    async def get_table_names(self) -> list[str]:
        """Return base table names of the connected schema."""
        ...

    async def get_foreign_key_targets(self, table: str) -> list[str]:
        """Return names of tables referenced by ``table``'s foreign keys."""
        ...

    async def get_column_names(self, table: str) -> set[str]:
        """Return column names of ``table``."""
        ...

    async def get_primary_key(self, table: str) -> list[str]:
        """Return ``table``'s primary key columns (empty if it has none)."""
        ...

    async def run_sync(self, fn: Callable[[Any], T]) -> T:
        """Run ``fn(sync_connection)`` for SQLAlchemy reflection."""
        ...

    async def test_connection(self) -> bool:
        """Run ``SELECT 1``; raise if the database is unreachable."""
        ...

    async def close(self) -> None:
        """Close the pinned connection and dispose the engine."""
        ...
