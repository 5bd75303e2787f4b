"""Pydantic models for schema inspection, validation and connections."""

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Dependency Graph Nodes
# ============================================================================


class TableNode(BaseModel):
    """A table and the tables its foreign keys reference."""

    model_config = ConfigDict(frozen=True)

    name: str
    depends_on: frozenset[str] = frozenset()


# ============================================================================
# Validation Result Models
# ============================================================================


class ColumnDiff(BaseModel):
    """A column present on the source but missing on the target."""

    table: str
    column: str
    message: str = ""


class SchemaValidationResult(BaseModel):
    """Result of comparing replicated tables against the source."""

    valid: bool
    missing_tables: list[str] = Field(default_factory=list)
    missing_columns: list[ColumnDiff] = Field(default_factory=list)

    @property
    def error_count(self) -> int:
        """Count of missing tables + missing columns."""
        return len(self.missing_tables) + len(self.missing_columns)

    def format_report(self) -> str:
        """Format validation result as human-readable report."""
        if self.valid:
            return "Target schema matches source"

        lines = ["Target schema does not match source:"]

        if self.missing_tables:
            lines.append(f"\n  Missing tables ({len(self.missing_tables)}):")
            for table in self.missing_tables:
                lines.append(f"    - {table}")

        if self.missing_columns:
            lines.append(f"\n  Missing columns ({len(self.missing_columns)}):")
            for diff in self.missing_columns:
                lines.append(f"    - {diff.table}.{diff.column}")

        return "\n".join(lines)


# ============================================================================
# Connection Result
# ============================================================================


class ConnectionResult(BaseModel):
    """Result of connect_and_validate()."""

    success: bool
    profile_name: str | None = None
    database_name: str | None = None
    dialect: str | None = None
    error: str | None = None
