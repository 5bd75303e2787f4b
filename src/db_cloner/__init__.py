"""db-cloner: Clone a database's schema and data onto another database.

Tables are created in foreign-key order, rows are copied in ordered
batches bounded by a snapshot taken at planning time, and failed batches
are counted against an error budget.  MySQL/MariaDB, PostgreSQL and SQLite
are supported; source and target must use the same engine.

Usage:
    from db_cloner import load_db_config, clone_profiles

    config = load_db_config()
    result = await clone_profiles("production", "staging", config)
    print(result.drift.format_report())
"""

__version__ = "0.1.0"

# Adapters
from db_cloner.adapters.base import DatabaseClient
from db_cloner.adapters.sql import AsyncSQLAdapter

# Config
from db_cloner.config.loader import load_db_config
from db_cloner.config.models import CloneSettings, DatabaseConfig, DatabaseProfile

# Errors
from db_cloner.errors import (
    BudgetExceededError,
    CloneCancelledError,
    CloneError,
    ConfigurationError,
    ConnectivityError,
    InsertionError,
    MissingOrderColumnError,
    SchemaError,
)

# Factory
from db_cloner.factory import (
    ProfileNotFoundError,
    connect_and_validate,
    get_adapter,
    resolve_url,
)

# Schema
from db_cloner.schema.graph import DependencyGraph
from db_cloner.schema.introspector import SchemaIntrospector

# Clone
from db_cloner.clone import (
    CloneObserver,
    CloneResult,
    TablePlan,
    clone_profiles,
    run_clone,
)

__all__ = [
    # Adapters
    "DatabaseClient",
    "AsyncSQLAdapter",
    # Config
    "load_db_config",
    "CloneSettings",
    "DatabaseProfile",
    "DatabaseConfig",
    # Errors
    "CloneError",
    "ConfigurationError",
    "MissingOrderColumnError",
    "ConnectivityError",
    "SchemaError",
    "InsertionError",
    "BudgetExceededError",
    "CloneCancelledError",
    # Factory
    "get_adapter",
    "connect_and_validate",
    "ProfileNotFoundError",
    "resolve_url",
    # Schema
    "DependencyGraph",
    "SchemaIntrospector",
    # Clone
    "run_clone",
    "clone_profiles",
    "TablePlan",
    "CloneResult",
    "CloneObserver",
]
