"""
Tabular result access.

Runs a query against any QueryHandle and flattens the result into a
table of strings, then narrows that table to a single row, a single
column or a single value. fetch_result() is the only function here that
opens a cursor; everything else is a pure transformation on top of it.
"""

from typing import Any, List
import logging
import time

from .base import (
    QueryHandle,
    QueryResult,
    Row,
    Table,
    DatabaseConnectionError,
    DatabaseQueryError,
    DatabaseShapeError
)

logger = logging.getLogger(__name__)


def fetch_result(handle: QueryHandle, query: str, *args: Any) -> QueryResult:
    """
    Execute a query and materialize every row as text.

    Args:
        handle: Open database handle (anything implementing open_cursor)
        query: SQL query with driver placeholders
        *args: Bind arguments, passed through to the driver untouched

    Returns:
        QueryResult with column names and a rectangular table of rows

    Raises:
        DatabaseQueryError: If the query fails, a row fails to scan, or a
            row's width differs from the number of columns
        DatabaseConnectionError: If the handle is not connected
    """
    start_time = time.time()

    try:
        cursor = handle.open_cursor(query, args)
    except (DatabaseQueryError, DatabaseConnectionError):
        raise
    except Exception as e:
        raise DatabaseQueryError(f"Query failed: {str(e)}") from e

    try:
        columns = list(cursor.column_names())
        rows: Table = []
        for row in cursor:
            if len(row) != len(columns):
                raise DatabaseQueryError(
                    f"Row {len(rows)} has {len(row)} values, expected {len(columns)}"
                )
            rows.append(list(row))
    except DatabaseQueryError:
        raise
    except Exception as e:
        raise DatabaseQueryError(f"Row scan failed: {str(e)}") from e
    finally:
        cursor.close()

    execution_time = time.time() - start_time
    logger.debug(f"Fetched {len(rows)} rows in {execution_time:.3f}s: {query[:100]}")

    return QueryResult(
        columns=columns,
        rows=rows,
        row_count=len(rows),
        execution_time=execution_time,
        sql_query=query
    )


def fetch_table(handle: QueryHandle, query: str, *args: Any) -> Table:
    """Execute a query and return all rows as lists of strings ([] for no rows)."""
    return fetch_result(handle, query, *args).rows


def fetch_row(handle: QueryHandle, query: str, *args: Any) -> Row:
    """
    Execute a query expected to return at most one row.

    Returns [] when the query yields no rows.

    Raises:
        DatabaseShapeError: If more than one row comes back
    """
    rows = fetch_table(handle, query, *args)
    if len(rows) == 0:
        return []
    if len(rows) == 1:
        return rows[0]
    raise DatabaseShapeError("fetch_row", "rows", len(rows), "0 or 1")


def fetch_column(handle: QueryHandle, query: str, *args: Any) -> List[str]:
    """
    Execute a single-column query and return its values in row order.

    Raises:
        DatabaseShapeError: If the query returns anything but one column
    """
    rows = fetch_table(handle, query, *args)
    if len(rows) == 0:
        return []
    if len(rows[0]) != 1:
        raise DatabaseShapeError("fetch_column", "columns", len(rows[0]), "1")
    return [row[0] for row in rows]


def fetch_value(handle: QueryHandle, query: str, *args: Any) -> str:
    """
    Execute a query that must produce exactly one value.

    Unlike fetch_row, an empty result is an error here.

    Raises:
        DatabaseShapeError: If the row is missing or has more than one value
    """
    row = fetch_row(handle, query, *args)
    if len(row) != 1:
        raise DatabaseShapeError("fetch_value", "values", len(row), "1")
    return row[0]


def as_line(row: Row) -> str:
    return "\t".join(row)


def as_table(table: Table) -> str:
    """Render a table as tab-separated lines, one per row."""
    return "".join(as_line(row) + "\n" for row in table)
