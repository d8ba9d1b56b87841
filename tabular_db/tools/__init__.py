"""
MCP Tools for tabular-db.

This package contains the MCP tools for managing connections, running
queries and inspecting schemas.
"""

from .query_tools import fetch_table, fetch_row, fetch_column, fetch_value, copy_from_csv
from .schema_tools import list_tables, list_table_indices, table_exists
from .connection_tools import (
    list_connections,
    connect,
    disconnect,
    test_connection,
    get_database_info,
    create_database,
    drop_database
)

__all__ = [
    'fetch_table',
    'fetch_row',
    'fetch_column',
    'fetch_value',
    'copy_from_csv',
    'list_tables',
    'list_table_indices',
    'table_exists',
    'list_connections',
    'connect',
    'disconnect',
    'test_connection',
    'get_database_info',
    'create_database',
    'drop_database'
]
