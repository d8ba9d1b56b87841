"""
Query Tools for the tabular-db MCP Server.

Tools for running SQL and reading the result back as a table, a row,
a column or a single value.
"""

from typing import Dict, Any, List, Optional
import logging
from ..database import tabular
from ..database.base import DatabaseShapeError
from .connection_tools import _active_connections, get_connection

logger = logging.getLogger(__name__)


def _no_connection(connection_name: str) -> Dict[str, Any]:
    return {
        "success": False,
        "error": f"No active connection named '{connection_name}'",
        "available_connections": list(_active_connections.keys())
    }


def _query_failed(e: Exception, sql_query: str) -> Dict[str, Any]:
    logger.error(f"Query failed: {e}")
    response: Dict[str, Any] = {
        "success": False,
        "error": f"Query failed: {str(e)}",
        "sql_query": sql_query
    }
    if isinstance(e, DatabaseShapeError):
        response["expected"] = e.expected
        response["actual"] = e.actual
    return response


def fetch_table(
    connection_name: str,
    sql_query: str,
    params: Optional[List[Any]] = None
) -> Dict[str, Any]:
    """
    Run a query and return every row as a list of strings.

    Args:
        connection_name: Name of the database connection
        sql_query: SQL query with %s placeholders
        params: Bind arguments for the placeholders

    Returns:
        Dictionary with columns, rows and a tab-separated text rendering
    """
    db = get_connection(connection_name)
    if db is None:
        return _no_connection(connection_name)

    try:
        result = tabular.fetch_result(db, sql_query, *(params or []))
        return {
            "success": True,
            "columns": result.columns,
            "rows": result.rows,
            "text": tabular.as_table(result.rows),
            "row_count": result.row_count,
            "execution_time": result.execution_time,
            "sql_query": result.sql_query
        }
    except Exception as e:
        return _query_failed(e, sql_query)


def fetch_row(
    connection_name: str,
    sql_query: str,
    params: Optional[List[Any]] = None
) -> Dict[str, Any]:
    """
    Run a query returning at most one row.

    Returns:
        Dictionary with the row ([] if there was none)
    """
    db = get_connection(connection_name)
    if db is None:
        return _no_connection(connection_name)

    try:
        row = tabular.fetch_row(db, sql_query, *(params or []))
        return {
            "success": True,
            "row": row,
            "text": tabular.as_line(row),
            "sql_query": sql_query
        }
    except Exception as e:
        return _query_failed(e, sql_query)


def fetch_column(
    connection_name: str,
    sql_query: str,
    params: Optional[List[Any]] = None
) -> Dict[str, Any]:
    """
    Run a single-column query.

    Returns:
        Dictionary with the column values in row order
    """
    db = get_connection(connection_name)
    if db is None:
        return _no_connection(connection_name)

    try:
        values = tabular.fetch_column(db, sql_query, *(params or []))
        return {
            "success": True,
            "values": values,
            "count": len(values),
            "sql_query": sql_query
        }
    except Exception as e:
        return _query_failed(e, sql_query)


def fetch_value(
    connection_name: str,
    sql_query: str,
    params: Optional[List[Any]] = None
) -> Dict[str, Any]:
    """
    Run a query that must produce exactly one value.

    Returns:
        Dictionary with the value as text
    """
    db = get_connection(connection_name)
    if db is None:
        return _no_connection(connection_name)

    try:
        value = tabular.fetch_value(db, sql_query, *(params or []))
        return {
            "success": True,
            "value": value,
            "sql_query": sql_query
        }
    except Exception as e:
        return _query_failed(e, sql_query)


def copy_from_csv(
    connection_name: str,
    table_name: str,
    csv_path: str,
    local: bool = False
) -> Dict[str, Any]:
    """
    Bulk load a CSV file into a table.

    Args:
        connection_name: Name of the database connection
        table_name: Target table
        csv_path: CSV file path (server-side unless local is True)
        local: Send the file from the client with LOAD DATA LOCAL INFILE

    Returns:
        Dictionary with the number of rows loaded
    """
    db = get_connection(connection_name)
    if db is None:
        return _no_connection(connection_name)

    try:
        loaded = db.copy_from_csv(table_name, csv_path, local=local)
        return {
            "success": True,
            "table_name": table_name,
            "rows_loaded": loaded,
            "csv_path": csv_path
        }
    except Exception as e:
        logger.error(f"CSV load failed: {e}")
        return {
            "success": False,
            "error": f"CSV load failed: {str(e)}",
            "table_name": table_name,
            "csv_path": csv_path
        }
