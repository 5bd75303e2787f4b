"""Schema introspection, dependency ordering, and dialect-specific DDL.

Provides live introspection (``SchemaIntrospector``), the foreign-key
``DependencyGraph`` with its topological order, per-engine ``Dialect``
helpers, and the post-create comparison (``compare_replicated_schema``).

Usage:
    from db_cloner.schema import SchemaIntrospector, DependencyGraph
    from db_cloner.schema import get_dialect, compare_replicated_schema
"""

from db_cloner.schema.comparator import compare_replicated_schema
from db_cloner.schema.dialects import (
    Dialect,
    MySQLDialect,
    PostgresDialect,
    SQLiteDialect,
    get_dialect,
)
from db_cloner.schema.graph import DependencyGraph
from db_cloner.schema.introspector import SchemaIntrospector
from db_cloner.schema.models import (
    ColumnDiff,
    ConnectionResult,
    SchemaValidationResult,
    TableNode,
)

__all__ = [
    "SchemaIntrospector",
    "DependencyGraph",
    "TableNode",
    "Dialect",
    "MySQLDialect",
    "PostgresDialect",
    "SQLiteDialect",
    "get_dialect",
    "compare_replicated_schema",
    "SchemaValidationResult",
    "ColumnDiff",
    "ConnectionResult",
]
