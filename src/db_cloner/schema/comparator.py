"""Post-create check that the target matches the source.

Compares the source's columns for the cloned tables against what the target
reports after the creation statements ran.  Pure set logic -- no I/O.

Usage:
    from db_cloner.schema.comparator import compare_replicated_schema

    source_columns = await SchemaIntrospector(source).get_column_names(tables)
    target_columns = await SchemaIntrospector(target).get_column_names()

    result = compare_replicated_schema(source_columns, target_columns)
    if not result.valid:
        print(result.format_report())
"""

from db_cloner.schema.models import ColumnDiff, SchemaValidationResult


def compare_replicated_schema(
    source_columns: dict[str, set[str]],
    target_columns: dict[str, set[str]],
) -> SchemaValidationResult:
    """Check every source table and column exists on the target.

    Only tables in *source_columns* are checked; other tables on the target
    (e.g. kept by ``only_drop_cloned_tables``) are ignored.

    Args:
        source_columns: Table -> column names for the cloned tables.
        target_columns: Table -> column names read back from the target.

    Returns:
        ``SchemaValidationResult`` with ``valid`` False if any table or
        column is missing on the target.

    Examples:
        >>> compare_replicated_schema({"users": {"id"}}, {"users": {"id"}}).valid
        True
        >>> result = compare_replicated_schema({"users": {"id", "name"}}, {"users": {"id"}})
        >>> result.missing_columns[0].column
        'name'
    """
    missing_tables: list[str] = sorted(set(source_columns) - set(target_columns))

    missing_columns: list[ColumnDiff] = []
    for table_name in sorted(set(source_columns) & set(target_columns)):
        for col_name in sorted(source_columns[table_name] - target_columns[table_name]):
            missing_columns.append(
                ColumnDiff(
                    table=table_name,
                    column=col_name,
                    message=f"Column '{col_name}' missing from target table '{table_name}'",
                )
            )

    return SchemaValidationResult(
        valid=not missing_tables and not missing_columns,
        missing_tables=missing_tables,
        missing_columns=missing_columns,
    )
