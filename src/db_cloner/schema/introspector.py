"""Live schema introspection through a ``DatabaseClient``.

Queries the connected database for:
- Table names
- Foreign-key targets per table (to build a ``DependencyGraph``)
- Column names per table
- Creation statements and deferred foreign keys (delegated to the
  engine's ``Dialect``)

The adapter does the engine-agnostic part with SQLAlchemy's inspector; the
``Dialect`` covers what the inspector cannot (verbatim DDL).
"""

from db_cloner.adapters.base import DatabaseClient
from db_cloner.schema.dialects import Dialect, get_dialect
from db_cloner.schema.graph import DependencyGraph


class SchemaIntrospector:
    """Introspects a database schema for cloning.

    Usage:
        introspector = SchemaIntrospector(adapter)
        graph = await introspector.get_dependency_graph()
        columns = await introspector.get_column_names(graph.tables)
        ddl = await introspector.get_creation_statements("users")
    """

    # Installed by the PostGIS extension, not by the application
    EXCLUDED_TABLES: frozenset[str] = frozenset({"spatial_ref_sys"})

    def __init__(
        self,
        adapter: DatabaseClient,
        excluded_tables: set[str] | frozenset[str] | None = None,
    ) -> None:
        """Initialize with a connected adapter.

        Args:
            adapter: Database adapter to inspect.
            excluded_tables: Table names to hide from every result.
                Defaults to ``EXCLUDED_TABLES``.
        """
        self._adapter = adapter
        self._excluded = frozenset(
            self.EXCLUDED_TABLES if excluded_tables is None else excluded_tables
        )
        self._dialect: Dialect | None = None

    @property
    def dialect(self) -> Dialect:
        if self._dialect is None:
            self._dialect = get_dialect(self._adapter.dialect_name)
        return self._dialect

    async def get_table_names(self) -> list[str]:
        """Get all base table names, sorted."""
        tables = await self._adapter.get_table_names()
        return sorted(t for t in tables if t not in self._excluded)

    async def get_foreign_keys(self, table_name: str) -> list[str]:
        """Get the tables referenced by ``table_name``'s foreign keys (deduplicated)."""
        targets = await self._adapter.get_foreign_key_targets(table_name)
        return sorted(set(targets))

    async def get_dependency_graph(self) -> DependencyGraph:
        """Build the foreign-key graph of every (non-excluded) table."""
        edges: dict[str, list[str]] = {}
        for table_name in await self.get_table_names():
            edges[table_name] = await self.get_foreign_keys(table_name)
        return DependencyGraph(edges)

    async def get_column_names(
        self, tables: list[str] | None = None
    ) -> dict[str, set[str]]:
        """Get column names per table.

        Args:
            tables: Tables to query (default: all tables).

        Returns:
            Dict mapping table name to set of column names.
        """
        if tables is None:
            tables = await self.get_table_names()

        result: dict[str, set[str]] = {}
        for table_name in tables:
            result[table_name] = await self._adapter.get_column_names(table_name)
        return result

    async def get_creation_statements(self, table_name: str) -> list[str]:
        """Get the statements that recreate ``table_name`` on another database."""
        return await self.dialect.creation_statements(self._adapter, table_name)

    async def get_foreign_key_statements(self, table_name: str) -> list[str]:
        """Get foreign keys to add once every cloned table exists."""
        return await self.dialect.foreign_key_statements(self._adapter, table_name)
