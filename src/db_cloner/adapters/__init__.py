"""Database adapters package.

Provides the ``DatabaseClient`` Protocol and ``AsyncSQLAdapter``, the
SQLAlchemy-backed implementation used for both ends of a clone.

The driver for each engine is an optional extra (``asyncpg`` is always
installed; ``aiomysql`` and ``aiosqlite`` come with the ``mysql`` and
``sqlite`` extras).  A missing driver only fails when a URL for that engine
is opened.

Usage:
    from db_cloner.adapters import DatabaseClient, AsyncSQLAdapter
"""

from db_cloner.adapters.base import DatabaseClient
from db_cloner.adapters.sql import AsyncSQLAdapter, normalize_url

__all__ = [
    "DatabaseClient",
    "AsyncSQLAdapter",
    "normalize_url",
]
