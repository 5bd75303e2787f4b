"""Pydantic models for db.toml configuration."""

from pydantic import BaseModel, Field, PositiveInt


# ============================================================================
# Connection Profiles
# ============================================================================


class DatabaseProfile(BaseModel):
    """Named database connection from db.toml."""

    url: str
    description: str = ""
    db_password: str | None = None  # For [YOUR-PASSWORD] placeholder substitution


# ============================================================================
# Clone Settings
# ============================================================================


class CloneSettings(BaseModel):
    """The ``[clone]`` table of db.toml.

    Attributes:
        batch_size: Default number of rows per insert batch.
        table_batch_sizes: Per-table batch size overrides.
        table_order_columns: Per-table ordering column overrides.  Used
            only if the column exists; otherwise ``id`` / ``created_at``.
        exclude_tables: Tables never cloned (ignored when
            ``include_only_tables`` is set).
        include_only_tables: Clone exactly these tables.
        only_drop_cloned_tables: Drop only the cloned tables from the
            target instead of wiping it.  May need
            ``disable_foreign_key_checks``.
        max_allowed_errors: Failed batches tolerated before the run is
            terminated.  ``0`` stops on the first failure.
        disable_foreign_key_checks: Turn off FK enforcement on the target
            for drop, create and populate.  Not recommended.
        failure_log: File that receives every recorded insertion failure.
    """

    batch_size: PositiveInt = 1000
    table_batch_sizes: dict[str, PositiveInt] = Field(default_factory=dict)
    table_order_columns: dict[str, str] = Field(default_factory=dict)
    exclude_tables: list[str] = Field(default_factory=list)
    include_only_tables: list[str] = Field(default_factory=list)
    only_drop_cloned_tables: bool = False
    max_allowed_errors: int = Field(default=0, ge=0)
    disable_foreign_key_checks: bool = False
    failure_log: str = "clone-db.log"

    def batch_size_for(self, table: str) -> int:
        """Per-table override, else the global default."""
        return self.table_batch_sizes.get(table, self.batch_size)


class DatabaseConfig(BaseModel):
    """Complete configuration from db.toml."""

    profiles: dict[str, DatabaseProfile]
    clone: CloneSettings = Field(default_factory=CloneSettings)
