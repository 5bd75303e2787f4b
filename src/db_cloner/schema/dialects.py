"""Engine-specific SQL for cloning.

Each ``Dialect`` knows how to:
- retrieve the statements that recreate a table on another database,
- retrieve foreign keys that must be added once all tables exist,
- disable and re-enable foreign-key enforcement for the session,
- drop a table.

Source and target always share a dialect (no cross-engine translation).

Usage:
    from db_cloner.schema.dialects import get_dialect

    dialect = get_dialect(adapter.dialect_name)
    for statement in await dialect.creation_statements(source, "users"):
        await target.execute(statement)
"""

import re
from collections.abc import Callable
from typing import Any

from sqlalchemy import MetaData, Table
from sqlalchemy.schema import AddConstraint, CreateIndex, CreateTable

from db_cloner.adapters.base import DatabaseClient
from db_cloner.errors import ConfigurationError, SchemaError

# nextval('users_id_seq'::regclass) -> users_id_seq
_NEXTVAL_PATTERN = re.compile(r"nextval\('([^']+)'(?:::regclass)?\)", re.IGNORECASE)


class Dialect:
    """Base class; subclasses fill in engine-specific statements."""

    name: str = ""

    def disable_foreign_key_checks_sql(self) -> str:
        raise NotImplementedError

    def enable_foreign_key_checks_sql(self) -> str:
        raise NotImplementedError

    def drop_table_sql(self, quoted_table: str) -> str:
        return f"DROP TABLE IF EXISTS {quoted_table}"

    async def creation_statements(self, adapter: DatabaseClient, table: str) -> list[str]:
        """Statements that recreate ``table`` (in execution order).

        Raises:
            SchemaError: If the source cannot describe the table.
        """
        raise NotImplementedError

    async def foreign_key_statements(self, adapter: DatabaseClient, table: str) -> list[str]:
        """Foreign keys to add after every table exists.

        Empty for engines whose ``CREATE TABLE`` may name tables that do
        not exist yet (with foreign-key checks disabled).
        """
        return []


class MySQLDialect(Dialect):
    """MySQL / MariaDB: ``SHOW CREATE TABLE`` replayed verbatim."""

    name = "mysql"

    def disable_foreign_key_checks_sql(self) -> str:
        return "SET FOREIGN_KEY_CHECKS=0"

    def enable_foreign_key_checks_sql(self) -> str:
        return "SET FOREIGN_KEY_CHECKS=1"

    async def creation_statements(self, adapter: DatabaseClient, table: str) -> list[str]:
        rows = await adapter.fetch_all(f"SHOW CREATE TABLE {adapter.quote(table)}")
        if not rows or not rows[0].get("Create Table"):
            raise SchemaError(f"SHOW CREATE TABLE returned no statement for '{table}'", table)
        return [rows[0]["Create Table"]]


class SQLiteDialect(Dialect):
    """SQLite: the ``sql`` column of ``sqlite_master`` replayed verbatim."""

    name = "sqlite"

    def disable_foreign_key_checks_sql(self) -> str:
        return "PRAGMA foreign_keys = OFF"

    def enable_foreign_key_checks_sql(self) -> str:
        return "PRAGMA foreign_keys = ON"

    async def creation_statements(self, adapter: DatabaseClient, table: str) -> list[str]:
        rows = await adapter.select(
            "sqlite_master", "sql", filters={"type": "table", "name": table}
        )
        if not rows or not rows[0].get("sql"):
            raise SchemaError(f"sqlite_master has no CREATE statement for '{table}'", table)
        return [rows[0]["sql"]]


class PostgresDialect(Dialect):
    """PostgreSQL: DDL compiled from SQLAlchemy reflection.

    PostgreSQL has no ``SHOW CREATE TABLE``.  The table is reflected and
    compiled back with ``CreateTable`` / ``CreateIndex``.  Sequences named
    by ``nextval()`` defaults in the compiled DDL are created first
    (``IF NOT EXISTS``) so those defaults resolve on the target.

    Foreign keys are left out of ``CREATE TABLE`` and added with
    ``ALTER TABLE ... ADD CONSTRAINT`` once every table exists, so tables
    in a foreign-key cycle can be created at all.

    Foreign-key triggers are suspended with ``session_replication_role``,
    which requires superuser (or ``SET`` privilege on that parameter).
    """

    name = "postgresql"

    def disable_foreign_key_checks_sql(self) -> str:
        return "SET session_replication_role = replica"

    def enable_foreign_key_checks_sql(self) -> str:
        return "SET session_replication_role = DEFAULT"

    def drop_table_sql(self, quoted_table: str) -> str:
        # CASCADE removes FK constraints of dependents, never the dependent tables
        return f"DROP TABLE IF EXISTS {quoted_table} CASCADE"

    async def _compile(
        self,
        adapter: DatabaseClient,
        table: str,
        build: Callable[[Table, Any], list[str]],
    ) -> list[str]:
        """Reflect ``table`` and turn it into statements with ``build(table, dialect)``."""

        def _reflect(sync_conn) -> list[str]:
            reflected = Table(table, MetaData(), autoload_with=sync_conn)
            return build(reflected, sync_conn.dialect)

        try:
            return await adapter.run_sync(_reflect)
        except Exception as e:
            raise SchemaError(f"Could not reflect table '{table}': {e}", table) from e

    async def creation_statements(self, adapter: DatabaseClient, table: str) -> list[str]:
        def _build(reflected: Table, dialect) -> list[str]:
            create_table = str(
                CreateTable(reflected, include_foreign_key_constraints=[]).compile(dialect=dialect)
            ).strip()

            # Autoincrement keys compile to SERIAL, which creates its own
            # sequence; only defaults left in the DDL need one up front.
            sequences = sorted(set(_NEXTVAL_PATTERN.findall(create_table)))
            statements = [f"CREATE SEQUENCE IF NOT EXISTS {seq}" for seq in sequences]
            statements.append(create_table)
            for index in sorted(reflected.indexes, key=lambda ix: ix.name or ""):
                statements.append(str(CreateIndex(index).compile(dialect=dialect)).strip())
            return statements

        return await self._compile(adapter, table, _build)

    async def foreign_key_statements(self, adapter: DatabaseClient, table: str) -> list[str]:
        def _build(reflected: Table, dialect) -> list[str]:
            constraints = sorted(
                reflected.foreign_key_constraints, key=lambda fk: fk.name or ""
            )
            return [
                str(AddConstraint(fk).compile(dialect=dialect)).strip() for fk in constraints
            ]

        return await self._compile(adapter, table, _build)


_DIALECTS: dict[str, type[Dialect]] = {
    "mysql": MySQLDialect,
    "mariadb": MySQLDialect,
    "postgresql": PostgresDialect,
    "sqlite": SQLiteDialect,
}


def get_dialect(name: str) -> Dialect:
    """Return the ``Dialect`` for a SQLAlchemy dialect name.

    Raises:
        ConfigurationError: If the engine is not supported.
    """
    try:
        return _DIALECTS[name]()
    except KeyError:
        supported = ", ".join(sorted(_DIALECTS))
        raise ConfigurationError(
            f"Unsupported database engine '{name}'. Supported: {supported}"
        ) from None
