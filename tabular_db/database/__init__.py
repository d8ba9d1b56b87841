"""
Database connection implementations.

This package provides the handle contracts, the tabular result access
layer built on them, and the MySQL implementation of the handle.
"""

from .base import (
    DatabaseConnection,
    DatabaseType,
    QueryHandle,
    QueryResult,
    TextCursor,
    Row,
    Table,
    DatabaseConnectionError,
    DatabaseQueryError,
    DatabaseShapeError,
    DatabaseConfigError
)

from .tabular import (
    fetch_result,
    fetch_table,
    fetch_row,
    fetch_column,
    fetch_value,
    as_line,
    as_table
)

from .mysql import (
    MySQLConnection,
    MySQLTextCursor,
    create_mysql_connection,
    create_database,
    drop_database
)

# List what's available when someone imports from this package
__all__ = [
    'DatabaseConnection',
    'DatabaseType',
    'QueryHandle',
    'QueryResult',
    'TextCursor',
    'Row',
    'Table',
    'DatabaseConnectionError',
    'DatabaseQueryError',
    'DatabaseShapeError',
    'DatabaseConfigError',
    'fetch_result',
    'fetch_table',
    'fetch_row',
    'fetch_column',
    'fetch_value',
    'as_line',
    'as_table',
    'MySQLConnection',
    'MySQLTextCursor',
    'create_mysql_connection',
    'create_database',
    'drop_database'
]
