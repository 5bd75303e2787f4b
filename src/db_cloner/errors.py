"""Exception hierarchy for database cloning.

Fatal errors (configuration, connectivity, schema, budget) unwind to the
caller of ``run_clone()`` / ``clone_profiles()``.  ``InsertionError`` is the
only recoverable error: the data replicator records it against the shared
``ErrorBudget`` and moves on to the next batch.

Usage:
    from db_cloner.errors import CloneError, ConfigurationError

    try:
        result = await clone_profiles("production", "staging", config)
    except ConfigurationError as e:
        print(f"Fix db.toml: {e}")
    except CloneError as e:
        print(f"Clone failed: {e}")
"""


class CloneError(Exception):
    """Base class for all errors raised by db-cloner."""

    pass


class ConfigurationError(CloneError, ValueError):
    """Raised when configuration is missing or inconsistent.

    Always raised before any destructive action on the target.
    """

    pass


class MissingOrderColumnError(ConfigurationError):
    """Raised when a table has no column usable for ordered chunking."""

    def __init__(self, table: str) -> None:
        self.table = table
        super().__init__(
            f"Table '{table}' does not contain a valid order by column. "
            f"Each table needs either an id or created_at column, or one "
            f"set in [clone.table_order_columns]."
        )


class ConnectivityError(CloneError):
    """Raised when a configured database cannot be reached."""

    pass


class SchemaError(CloneError):
    """Raised when a table cannot be recreated on the target."""

    def __init__(self, message: str, table: str | None = None) -> None:
        self.table = table
        super().__init__(message)


class InsertionError(CloneError):
    """A single batch failed to write to the target.

    Recoverable: the batch is skipped and counted against the error budget.
    """

    def __init__(self, table: str, batch_index: int, rows: int, cause: Exception) -> None:
        self.table = table
        self.batch_index = batch_index
        self.rows = rows
        self.cause = cause
        super().__init__(
            f"Insertion failure in '{table}' (batch {batch_index}, {rows} rows): {cause}"
        )


class BudgetExceededError(CloneError):
    """Raised once insertion failures exceed ``max_allowed_errors``."""

    def __init__(self, messages: list[str], max_allowed_errors: int) -> None:
        self.messages = list(messages)
        self.max_allowed_errors = max_allowed_errors
        super().__init__(
            f"Too many errors ({len(self.messages)} > {max_allowed_errors}). "
            f"Clone terminated. Check the failure log."
        )


class CloneCancelledError(CloneError):
    """Raised when the operator declines the destructive-action confirmation."""

    pass
