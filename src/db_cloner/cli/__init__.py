"""CLI for cloning one database onto another.

Connections are named profiles in db.toml.  The clone command wipes the
target, recreates every table from the source and copies the rows in
batches.

Usage:
    db-cloner profiles
    db-cloner check production
    db-cloner plan production
    db-cloner clone production staging
    db-cloner clone production staging --yes --verbose

Commands:
    profiles  - List configured connections
    check     - Check a connection is reachable
    plan      - Show what a clone would copy (read-only)
    clone     - Clone one connection onto another
"""

import argparse
import asyncio
import logging
import sys

from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
)
from rich.table import Table

from db_cloner.clone.data_replicator import ReplicationOutcome, truncate
from db_cloner.clone.events import CloneObserver
from db_cloner.clone.planner import TablePlan
from db_cloner.clone.report import CloneResult, DriftEntry
from db_cloner.clone.runner import build_plan, clone_profiles
from db_cloner.config.loader import load_db_config
from db_cloner.config.models import DatabaseConfig
from db_cloner.errors import BudgetExceededError, CloneCancelledError, CloneError
from db_cloner.factory import connect_and_validate, open_validated_adapter
from db_cloner.logging_config import configure_logging

console = Console()

# Fatal error messages are cut to this length on the console
ERROR_MESSAGE_LIMIT = 500


# ============================================================================
# Progress reporting
# ============================================================================


class RichCloneObserver(CloneObserver):
    """Renders clone progress with rich: one bar per table, batches as steps."""

    def __init__(self, progress: Progress) -> None:
        self._progress = progress
        self._tasks: dict[str, TaskID] = {}

    def on_tables_dropped(self, tables: list[str]) -> None:
        # First hook after confirmation; the prompt cannot share the live display
        self._progress.start()
        self._progress.console.print(f"[dim]Dropped {len(tables)} tables on target[/dim]")

    def on_table_created(self, table: str) -> None:
        self._progress.console.print(f"[dim]Created {table}[/dim]")

    def on_table_start(self, plan: TablePlan) -> None:
        self._tasks[plan.name] = self._progress.add_task(
            f"{plan.name} [dim]({plan.snapshot_count} rows, batch {plan.batch_size})[/dim]",
            total=max(plan.chunk_count, 1),
        )

    def on_batch(self, plan: TablePlan, batch_index: int, rows: int) -> None:
        self._progress.advance(self._tasks[plan.name])

    def on_insertion_failure(self, table: str, message: str) -> None:
        self._progress.console.print(f"[red]x[/red] {message}")

    def on_table_complete(self, outcome: ReplicationOutcome) -> None:
        task_id = self._tasks[outcome.table]
        task = self._progress.tasks[task_id]
        if task.total is not None:
            self._progress.update(task_id, completed=task.total)

    def on_drift(self, entry: DriftEntry) -> None:
        self._progress.console.print(
            f"[yellow]![/yellow] {entry.table}: {entry.snapshot_count} -> "
            f"{entry.current_count} rows ({entry.difference:+d}) during the clone"
        )


def _new_progress() -> Progress:
    return Progress(
        SpinnerColumn(),
        TextColumn("[bold]{task.description}[/bold]"),
        BarColumn(bar_width=None),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=False,
    )


# ============================================================================
# Rendering helpers
# ============================================================================


def _plan_table(plans: list[TablePlan], title: str = "Clone Plan") -> Table:
    table = Table(title=title, show_header=True, header_style="bold")
    table.add_column("#", justify="right", style="dim")
    table.add_column("Table")
    table.add_column("Order by")
    table.add_column("Rows", justify="right")
    table.add_column("Batch", justify="right")
    table.add_column("Chunks", justify="right")
    table.add_column("References", style="dim")

    for i, plan in enumerate(plans, 1):
        table.add_row(
            str(i),
            plan.name,
            plan.order_column,
            str(plan.snapshot_count),
            str(plan.batch_size),
            str(plan.chunk_count),
            ", ".join(plan.foreign_dependencies) or "-",
        )
    return table


def _drift_table(result: CloneResult) -> Table:
    table = Table(title="Row Count Drift", show_header=True, header_style="bold")
    table.add_column("Table")
    table.add_column("Initial", justify="right")
    table.add_column("Current", justify="right")
    table.add_column("Difference", justify="right", style="yellow")

    for name, initial, current, difference in result.drift.rows():
        if difference:
            table.add_row(name, str(initial), str(current), f"{difference:+d}")
    return table


def _print_error(message: str) -> None:
    console.print(f"[bold red]x[/bold red] {truncate(message, ERROR_MESSAGE_LIMIT)}")


def _load_config(args: argparse.Namespace) -> DatabaseConfig | None:
    try:
        return load_db_config(args.config)
    except (FileNotFoundError, CloneError) as e:
        _print_error(str(e))
        return None


def _setup_logging(args: argparse.Namespace, config: DatabaseConfig | None = None) -> None:
    configure_logging(
        level=logging.INFO if args.verbose else logging.WARNING,
        failure_log=config.clone.failure_log if config is not None else None,
        console=console,
    )


# ============================================================================
# Async command implementations
# ============================================================================


async def _async_check(args: argparse.Namespace) -> int:
    """Async implementation for check command.

    Returns:
        0 if the connection is reachable, 1 otherwise.
    """
    config = _load_config(args)
    if config is None:
        return 1
    _setup_logging(args)

    console.print(f"Checking [cyan]{args.name}[/cyan]...", style="dim")
    result = await connect_and_validate(args.name, config)

    if not result.success:
        _print_error(result.error or "Connection failed")
        return 1

    console.print(
        f"[bold green]v[/bold green] Connected to [bold]{result.database_name}[/bold] "
        f"([dim]{result.dialect}[/dim])"
    )
    return 0


async def _async_plan(args: argparse.Namespace) -> int:
    """Async implementation for plan command.

    Returns:
        0 if every table can be planned, 1 otherwise.
    """
    config = _load_config(args)
    if config is None:
        return 1
    _setup_logging(args)

    try:
        source = await open_validated_adapter(args.source, config)
    except CloneError as e:
        _print_error(str(e))
        return 1

    try:
        plans = await build_plan(source, config.clone)
    except CloneError as e:
        _print_error(str(e))
        return 1
    except Exception as e:
        _print_error(f"Planning failed: {e}")
        return 1
    finally:
        await source.close()

    console.print()
    console.print(_plan_table(plans, title=f"Clone Plan for {args.source}"))
    console.print(
        f"[dim]{len(plans)} tables, "
        f"{sum(p.snapshot_count for p in plans)} rows[/dim]"
    )
    return 0


async def _async_clone(args: argparse.Namespace) -> int:
    """Async implementation for clone command.

    Returns:
        0 on success, 1 on cancellation or any fatal error.
    """
    config = _load_config(args)
    if config is None:
        return 1
    _setup_logging(args, config)

    settings = config.clone
    console.print(
        f"Cloning [bold]{args.source}[/bold] -> [bold cyan]{args.target}[/bold cyan]",
        style="dim",
    )

    def confirm(plans: list[TablePlan]) -> bool:
        console.print()
        console.print(_plan_table(plans))
        if settings.only_drop_cloned_tables:
            console.print(
                f"[yellow]The {len(plans)} tables above will be dropped and "
                f"recreated on [bold]{args.target}[/bold].[/yellow]"
            )
        else:
            console.print(
                f"[yellow]ALL tables on [bold]{args.target}[/bold] will be dropped.[/yellow]"
            )
        if settings.disable_foreign_key_checks:
            console.print("[yellow]Foreign key checks will be disabled on the target.[/yellow]")
        if args.yes:
            return True
        response = input("Continue? [y/N] ")
        return response.lower() in ["y", "yes"]

    progress = _new_progress()
    try:
        result = await clone_profiles(
            args.source,
            args.target,
            config,
            confirm=confirm,
            observer=RichCloneObserver(progress),
        )
    except CloneCancelledError:
        console.print("Cancelled.")
        return 1
    except BudgetExceededError as e:
        _print_error(str(e))
        console.print(f"[dim]Failures written to {settings.failure_log}[/dim]")
        return 1
    except CloneError as e:
        _print_error(str(e))
        return 1
    except Exception as e:
        _print_error(f"Database cloning failed: {e}")
        return 1
    finally:
        progress.stop()

    console.print()
    if result.drift.has_drift:
        console.print(_drift_table(result))
        console.print("[dim]Rows added during the clone were not copied.[/dim]")
    if result.failures:
        console.print(
            f"[yellow]{len(result.failures)} failed batches were skipped "
            f"(max_allowed_errors = {settings.max_allowed_errors}).[/yellow]"
        )
    console.print(
        f"[bold green]v Clone complete![/bold green] "
        f"{result.inserted_rows} rows in {len(result.outcomes)} tables. "
        f"Time taken: {result.duration}"
    )
    return 0


# ============================================================================
# Command handlers
# ============================================================================


def cmd_profiles(args: argparse.Namespace) -> int:
    """List profiles from db.toml.

    Reads only local TOML config -- no database calls.

    Returns:
        0 on success, 1 if db.toml is missing or invalid.
    """
    config = _load_config(args)
    if config is None:
        return 1

    table = Table(title="Database Profiles", show_header=True, header_style="bold")
    table.add_column("Profile", style="bold cyan")
    table.add_column("Engine")
    table.add_column("Description")

    for name, profile in config.profiles.items():
        engine = profile.url.split("://", 1)[0] if "://" in profile.url else "?"
        table.add_row(name, engine, profile.description or "")

    console.print(table)
    return 0


def cmd_check(args: argparse.Namespace) -> int:
    """Check that a profile is reachable.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_check(args))


def cmd_plan(args: argparse.Namespace) -> int:
    """Show the clone plan for a source profile.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_plan(args))


def cmd_clone(args: argparse.Namespace) -> int:
    """Clone a source profile onto a target profile.

    Wraps the async implementation with ``asyncio.run()``.
    """
    return asyncio.run(_async_clone(args))


# ============================================================================
# Main entry point
# ============================================================================


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="db-cloner",
        description="Clone a database schema and its data onto another database",
    )

    # Global options
    parser.add_argument(
        "--config",
        "-c",
        default=None,
        help="Path to db.toml (default: $DB_CLONER_CONFIG or ./db.toml)",
    )
    parser.add_argument(
        "--verbose",
        "-v",
        action="store_true",
        help="Log progress details",
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    # profiles command
    p_profiles = subparsers.add_parser(
        "profiles",
        help="List configured connections",
    )
    p_profiles.set_defaults(func=cmd_profiles)

    # check command
    p_check = subparsers.add_parser(
        "check",
        help="Check a connection is reachable",
    )
    p_check.add_argument("name", help="Profile name from db.toml")
    p_check.set_defaults(func=cmd_check)

    # plan command
    p_plan = subparsers.add_parser(
        "plan",
        help="Show what a clone would copy without changing anything",
    )
    p_plan.add_argument("source", help="Profile to clone from")
    p_plan.set_defaults(func=cmd_plan)

    # clone command
    p_clone = subparsers.add_parser(
        "clone",
        help="Clone one connection onto another (wipes the target)",
    )
    p_clone.add_argument("source", help="Profile to clone from")
    p_clone.add_argument("target", help="Profile to clone onto")
    p_clone.add_argument(
        "--yes",
        "-y",
        action="store_true",
        help="Skip the confirmation prompt",
    )
    p_clone.set_defaults(func=cmd_clone)

    return parser


def main() -> int:
    """Main CLI entry point.

    Parses command line arguments and dispatches to appropriate handler.

    Returns:
        Exit code (0 for success, non-zero for errors).
    """
    args = build_parser().parse_args()
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
