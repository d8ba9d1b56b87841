"""
Base Database Connection Interface

This module defines the contracts shared by every database handle:
the text cursor protocol the tabular layer consumes, the abstract
connection class concrete drivers implement, and the exception
taxonomy raised across the package.

The contracts ensure:
1. Query results can always be read back as rows of text
2. Cursors are released explicitly (close is idempotent)
3. Connection, query and shape failures are distinguishable
"""

from abc import ABC, abstractmethod
from typing import Dict, List, Any, Iterator, Optional, Protocol, Sequence, Tuple, runtime_checkable
from dataclasses import dataclass, field
from enum import Enum


Row = List[str]
Table = List[Row]


class DatabaseType(Enum):
    """Supported database types."""
    MYSQL = "mysql"
    UNKNOWN = "unknown"


@dataclass
class QueryResult:
    """
    Fully materialized, text-only result of one query.

    Attributes:
        columns: Column names in order, as reported by the driver
        rows: Table of rows, each row holding one text value per column
        row_count: Number of rows returned
        execution_time: Time taken in seconds (execute + fetch)
        sql_query: The original SQL query executed

        columns=["id", "name"], rows=[["1", "Alice"], ["2", "Bob"]]
    """
    columns: List[str]
    rows: Table = field(default_factory=list)
    row_count: int = 0
    execution_time: float = 0.0
    sql_query: Optional[str] = None


@runtime_checkable
class TextCursor(Protocol):
    """Live result stream of one query execution, decoded as text."""

    def column_names(self) -> List[str]: ...
    def __iter__(self) -> Iterator[Row]: ...
    def close(self) -> None: ...


@runtime_checkable
class QueryHandle(Protocol):
    """Anything that can execute a parameterized query and hand back a TextCursor."""

    def open_cursor(self, query: str, args: Sequence[Any] = ()) -> TextCursor: ...


class DatabaseConnection(ABC):
    """
    Abstract Base Class for Database Connections.

    Concrete drivers subclass this and implement connection management,
    query execution and the handful of metadata calls. Anything that reads
    rows goes through open_cursor(), which is what makes a connection
    usable as a QueryHandle for the tabular layer.

    Example Usage:
        ```python
        from tabular_db.database import tabular

        with create_mysql_connection("reports", config) as db:
            tabular.fetch_value(db, "SELECT count(*) FROM orders")
        ```
    """

    def __init__(self, connection_name: str):
        """
        Initialize a database connection.

        Args:
            connection_name: Unique identifier for this connection
                             (e.g., "reports", "reports_admin")
        """
        self.connection_name = connection_name
        self.config: Dict[str, Any] = {}
        self._connection = None
        self._is_connected = False

    @abstractmethod
    def connect(self, config: Dict[str, Any]) -> bool:
        """
        Establish a connection to the database using the provided configuration.

        Args:
            config: Dictionary containing connection parameters
                    (host or unix_socket, user, password, database, ...)

        Returns:
            bool: True if connection succeeded

        Raises:
            DatabaseConnectionError: If connection cannot be established
            DatabaseConfigError: If config is invalid or missing required keys
        """
        pass

    @abstractmethod
    def disconnect(self) -> None:
        """
        Gracefully close the database connection.

        Note: Should be idempotent (safe to call multiple times)
        """
        pass

    @abstractmethod
    def open_cursor(self, query: str, args: Sequence[Any] = ()) -> TextCursor:
        """
        Execute a query and return a cursor over its rows as text.

        The caller owns the returned cursor and must close it.

        Raises:
            DatabaseConnectionError: If not connected
            DatabaseQueryError: If the query fails to execute
        """
        pass

    @abstractmethod
    def execute(self, statement: str, args: Sequence[Any] = ()) -> int:
        """
        Execute a statement that returns no rows (DDL, LOAD DATA, ...).

        Returns:
            int: Number of affected rows reported by the driver
        """
        pass

    @abstractmethod
    def test_connection(self) -> Tuple[bool, str]:
        """
        Test if the database connection is alive and working.

        Returns:
            Tuple of (success: bool, message: str)
        """
        pass

    @abstractmethod
    def get_database_info(self) -> Dict[str, Any]:
        """Get metadata about the connected database (name, version, charset, ...)."""
        pass

    @property
    @abstractmethod
    def is_connected(self) -> bool:
        """True if connection is established and responsive."""
        pass

    @property
    @abstractmethod
    def db_type(self) -> DatabaseType:
        """Return the type of database."""
        pass

    def __enter__(self):
        """Support context manager protocol."""
        if not self.is_connected and self.config:
            self.connect(self.config)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Cleanup on context manager exit."""
        self.disconnect()

    def __repr__(self) -> str:
        """String representation for debugging."""
        return f"{self.__class__.__name__}(name='{self.connection_name}', type={self.db_type}, connected={self.is_connected})"


# Exception classes for database operations
class DatabaseConnectionError(Exception):
    """Raised when database connection fails."""
    pass

class DatabaseQueryError(Exception):
    """Raised when a query fails to execute or a row fails to scan."""
    pass

class DatabaseConfigError(Exception):
    """Raised when configuration is invalid."""
    pass

class DatabaseShapeError(Exception):
    """
    Raised when a result's row or column count violates the contract
    of a narrowing operation (fetch_row, fetch_column, fetch_value).
    """

    def __init__(self, operation: str, unit: str, actual: int, expected: str):
        self.operation = operation
        self.unit = unit
        self.actual = actual
        self.expected = expected
        super().__init__(f"{operation} error: got {actual} {unit}, expected {expected}")
