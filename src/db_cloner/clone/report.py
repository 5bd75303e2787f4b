"""End-of-run reporting: row-count drift and the overall clone result.

Drift is the difference between a table's row count on the source after it
was copied and its count at planning time.  Rows written to the source
during the run are not copied, so any positive drift is data the target is
missing.  Drift is informational, never an error.
"""

from pydantic import BaseModel, Field

from db_cloner.clone.data_replicator import ReplicationOutcome
from db_cloner.clone.planner import TablePlan

_DURATION_UNITS: tuple[tuple[str, int], ...] = (
    ("day", 86400),
    ("hour", 3600),
    ("minute", 60),
    ("second", 1),
)


def humanize_duration(seconds: float, parts: int = 3) -> str:
    """Render a duration as its largest ``parts`` units.

    Examples:
        >>> humanize_duration(3725)
        '1 hour 2 minutes 5 seconds'
        >>> humanize_duration(90061, parts=2)
        '1 day 1 hour'
        >>> humanize_duration(0.4)
        'less than a second'
    """
    remaining = int(seconds)
    if remaining < 1:
        return "less than a second"

    rendered: list[str] = []
    for unit, size in _DURATION_UNITS:
        value, remaining = divmod(remaining, size)
        if value:
            rendered.append(f"{value} {unit}{'' if value == 1 else 's'}")
        if len(rendered) == parts:
            break
    return " ".join(rendered)


class DriftEntry(BaseModel):
    """Row-count change of one table during the run."""

    table: str
    snapshot_count: int
    current_count: int

    @property
    def difference(self) -> int:
        return self.current_count - self.snapshot_count


class DriftReport(BaseModel):
    """Drift of every copied table."""

    entries: list[DriftEntry] = Field(default_factory=list)

    @classmethod
    def from_outcomes(cls, outcomes: list[ReplicationOutcome]) -> "DriftReport":
        return cls(
            entries=[
                DriftEntry(
                    table=o.table,
                    snapshot_count=o.snapshot_count,
                    current_count=o.snapshot_count + o.row_count_drift,
                )
                for o in outcomes
            ]
        )

    @property
    def has_drift(self) -> bool:
        return any(entry.difference for entry in self.entries)

    @property
    def drifted(self) -> list[DriftEntry]:
        return [entry for entry in self.entries if entry.difference]

    def rows(self) -> list[tuple[str, int, int, int]]:
        """``(table, initial, current, difference)`` for each entry."""
        return [
            (e.table, e.snapshot_count, e.current_count, e.difference)
            for e in self.entries
        ]

    def format_report(self) -> str:
        """Format drift as a human-readable report."""
        if not self.has_drift:
            return "No row count changes during the clone"

        lines = ["Source row counts changed during the clone:"]
        for entry in self.drifted:
            lines.append(
                f"  - {entry.table}: {entry.snapshot_count} -> "
                f"{entry.current_count} ({entry.difference:+d})"
            )
        return "\n".join(lines)


class CloneResult(BaseModel):
    """Outcome of a completed clone run.

    Attributes:
        source: Source database or profile name.
        target: Target database or profile name.
        plans: Tables cloned, in creation order.
        dropped_tables: Tables dropped from the target, in drop order.
        outcomes: Per-table transfer results.
        drift: Row-count drift per table.
        failures: Insertion failure messages tolerated by the error budget.
        duration_seconds: Wall time from planning to the last table.
    """

    source: str | None = None
    target: str | None = None
    plans: list[TablePlan] = Field(default_factory=list)
    dropped_tables: list[str] = Field(default_factory=list)
    outcomes: list[ReplicationOutcome] = Field(default_factory=list)
    drift: DriftReport = Field(default_factory=DriftReport)
    failures: list[str] = Field(default_factory=list)
    duration_seconds: float = 0.0

    @property
    def inserted_rows(self) -> int:
        return sum(o.inserted_rows for o in self.outcomes)

    @property
    def failed_batches(self) -> int:
        return sum(o.failed_batches for o in self.outcomes)

    @property
    def duration(self) -> str:
        return humanize_duration(self.duration_seconds)
