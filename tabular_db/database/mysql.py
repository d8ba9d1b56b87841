"""
MySQL Database Connection Implementation

This module provides the concrete implementation of DatabaseConnection
for MySQL databases using the PyMySQL library.

Key Features:
- Real MySQL connections using PyMySQL
- Text cursors that decode every column value into a string
- Schema introspection from INFORMATION_SCHEMA (tables, indices, existence)
- Create-or-open / drop database over an administrative connection
- CSV bulk load with LOAD DATA INFILE
"""

import pymysql
import pymysql.cursors
from typing import Dict, List, Any, Iterator, Optional, Sequence, Tuple
import datetime
import logging
import os

from .base import (
    DatabaseConnection,
    DatabaseType,
    Row,
    DatabaseConnectionError,
    DatabaseQueryError,
    DatabaseConfigError,
    DatabaseShapeError
)
from .tabular import fetch_column, fetch_row, fetch_value

# Set up logging
logger = logging.getLogger(__name__)


def to_text(value: Any) -> str:
    """
    Decode a single column value into text.

    NULL has no text form and is reported as a scan failure, the same
    way undecodable bytes are.
    """
    if value is None:
        raise DatabaseQueryError("Cannot scan NULL into a text value")
    if isinstance(value, (bytes, bytearray)):
        try:
            return bytes(value).decode("utf-8")
        except UnicodeDecodeError as e:
            raise DatabaseQueryError(f"Cannot decode column value as UTF-8: {str(e)}") from e
    if isinstance(value, datetime.timedelta):
        return format_time(value)
    return str(value)


def format_time(value: datetime.timedelta) -> str:
    """Render a TIME value the way MySQL does: [-]HH:MM:SS[.ffffff]."""
    sign = "-" if value < datetime.timedelta(0) else ""
    value = abs(value)
    total_seconds = value.days * 86400 + value.seconds
    hours, remainder = divmod(total_seconds, 3600)
    minutes, seconds = divmod(remainder, 60)
    text = f"{sign}{hours:02d}:{minutes:02d}:{seconds:02d}"
    if value.microseconds:
        text += f".{value.microseconds:06d}"
    return text


def quote_identifier(name: str) -> str:
    """Backtick-quote a database or table name for use in DDL."""
    return "`" + name.replace("`", "``") + "`"


class MySQLTextCursor:
    """
    TextCursor over a PyMySQL tuple cursor.

    Rows are fetched one at a time and every value goes through to_text().
    """

    def __init__(self, cursor: pymysql.cursors.Cursor):
        self._cursor = cursor
        self._closed = False

    def column_names(self) -> List[str]:
        description = self._cursor.description or ()
        return [desc[0] for desc in description]

    def __iter__(self) -> Iterator[Row]:
        while True:
            try:
                row = self._cursor.fetchone()
            except pymysql.Error as e:
                raise DatabaseQueryError(f"MySQL error while reading rows: {str(e)}") from e
            if row is None:
                return
            yield [to_text(value) for value in row]

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._cursor.close()


class MySQLConnection(DatabaseConnection):
    """
    Concrete MySQL database connection implementation.

    Besides the DatabaseConnection contract this class carries the
    MySQL-specific introspection queries and the CSV bulk load.
    """

    def __init__(self, connection_name: str):
        """
        Initialize MySQL connection.

        Args:
            connection_name: Unique name for this connection
        """
        super().__init__(connection_name)
        self._connection: Optional[pymysql.connections.Connection] = None
        self._mysql_version: Optional[str] = None

    # -----------------------------------------------------------------
    # Connection Management Methods
    # -----------------------------------------------------------------

    def connect(self, config: Dict[str, Any]) -> bool:
        """
        Establish connection to MySQL.

        Args:
            config: Dictionary with connection parameters:
                Required: user, and host or unix_socket
                Optional: password (plain or "env:VAR"), database (omit for
                administrative connections), port (default 3306), charset,
                autocommit, connect_timeout, read_timeout, local_infile, ssl

        Returns:
            bool: True if connection successful

        Raises:
            DatabaseConnectionError: If connection fails
            DatabaseConfigError: If config is invalid
        """
        if 'user' not in config:
            raise DatabaseConfigError("Missing required config key: user")
        if 'host' not in config and 'unix_socket' not in config:
            raise DatabaseConfigError("Missing required config key: host or unix_socket")

        password = self._get_password(config)

        conn_params: Dict[str, Any] = {
            'user': config['user'],
            'password': password,
            'port': config.get('port', 3306),
            'charset': config.get('charset', 'utf8mb4'),
            'cursorclass': pymysql.cursors.Cursor,
            'autocommit': config.get('autocommit', True),
            'local_infile': config.get('local_infile', False),
        }
        if 'unix_socket' in config:
            conn_params['unix_socket'] = config['unix_socket']
        if 'host' in config:
            conn_params['host'] = config['host']
        if config.get('database'):
            conn_params['database'] = config['database']
        if config.get('ssl', False):
            conn_params['ssl'] = {'ssl': True}
        for key in ('connect_timeout', 'read_timeout'):
            if key in config:
                conn_params[key] = config[key]

        # Store config for context-manager reconnects
        self.config = config

        target = config.get('unix_socket') or f"{config.get('host')}:{conn_params['port']}"
        logger.info(f"Connecting to MySQL: {target}/{config.get('database') or ''}")
        # Reconnecting replaces any connection this instance already holds
        self._close_quietly()
        try:
            self._connection = pymysql.connect(**conn_params)
            self._mysql_version = fetch_value(self, "SELECT VERSION()")
        except (pymysql.Error, DatabaseQueryError, DatabaseShapeError) as e:
            error_msg = f"MySQL connection failed: {str(e)}"
            logger.error(error_msg)
            self._close_quietly()
            raise DatabaseConnectionError(error_msg) from e

        self._is_connected = True
        logger.info(f"Successfully connected to MySQL (version: {self._mysql_version})")
        return True

    def disconnect(self) -> None:
        """Close MySQL connection gracefully."""
        if self._connection is None:
            self._is_connected = False
            return
        try:
            self._connection.close()
            logger.info(f"Disconnected from MySQL: {self.connection_name}")
        except pymysql.Error as e:
            logger.warning(f"Error during disconnect: {str(e)}")
        finally:
            self._connection = None
            self._is_connected = False

    # -----------------------------------------------------------------
    # Query Execution Methods
    # -----------------------------------------------------------------

    def open_cursor(self, query: str, args: Sequence[Any] = ()) -> MySQLTextCursor:
        """
        Execute a query and return a text cursor over its rows.

        Args:
            query: SQL query string with %s placeholders
            args: Positional bind arguments

        Returns:
            MySQLTextCursor: caller must close it
        """
        if self._connection is None:
            raise DatabaseConnectionError("Not connected to database")

        cursor = self._connection.cursor(pymysql.cursors.Cursor)
        try:
            cursor.execute(query, tuple(args) if args else None)
        except pymysql.Error as e:
            cursor.close()
            raise DatabaseQueryError(f"MySQL error: {str(e)}") from e

        logger.debug(f"Query executed: {query[:100]}")
        return MySQLTextCursor(cursor)

    def execute(self, statement: str, args: Sequence[Any] = ()) -> int:
        """
        Execute a statement that returns no rows.

        Returns:
            int: Affected rows
        """
        if self._connection is None:
            raise DatabaseConnectionError("Not connected to database")

        cursor = self._connection.cursor(pymysql.cursors.Cursor)
        try:
            cursor.execute(statement, tuple(args) if args else None)
            affected_rows = cursor.rowcount
            # Commit if not in autocommit mode
            if not self._connection.get_autocommit():
                self._connection.commit()
        except pymysql.Error as e:
            raise DatabaseQueryError(f"MySQL error: {str(e)}") from e
        finally:
            cursor.close()

        logger.debug(f"Statement affected {affected_rows} rows: {statement[:100]}")
        return affected_rows

    # -----------------------------------------------------------------
    # Schema Introspection Methods
    # -----------------------------------------------------------------

    def list_tables(self) -> List[str]:
        """Names of all tables in the current database."""
        return fetch_column(
            self,
            "SELECT TABLE_NAME FROM INFORMATION_SCHEMA.TABLES "
            "WHERE TABLE_SCHEMA = DATABASE() ORDER BY TABLE_NAME"
        )

    def table_indices(self, table_name: str) -> List[str]:
        """
        Names of the non-unique, non-primary indices on a table.

        Args:
            table_name: Name of the table

        Returns:
            List of index names (empty if the table has none or doesn't exist)
        """
        return fetch_column(
            self,
            """
            SELECT DISTINCT INDEX_NAME
            FROM INFORMATION_SCHEMA.STATISTICS
            WHERE TABLE_SCHEMA = DATABASE()
            AND TABLE_NAME = %s
            AND NON_UNIQUE = 1
            AND INDEX_NAME != 'PRIMARY'
            ORDER BY INDEX_NAME
            """,
            table_name
        )

    def table_exists(self, table_name: str) -> bool:
        """Check whether a table exists in the current database."""
        value = fetch_value(
            self,
            "SELECT COUNT(*) FROM INFORMATION_SCHEMA.TABLES "
            "WHERE TABLE_SCHEMA = DATABASE() AND TABLE_NAME = %s",
            table_name
        )
        if value not in ("0", "1"):
            raise DatabaseQueryError(
                f"table_exists error: query returned {value}, expected '0' or '1'"
            )
        return value == "1"

    def copy_from_csv(self, table_name: str, csv_path: str, local: bool = False) -> int:
        """
        Bulk load a CSV file into a table with LOAD DATA INFILE.

        Args:
            table_name: Target table
            csv_path: Path of the CSV file; read by the server unless local is set
            local: Send the file from the client (needs local_infile in config)

        Returns:
            int: Number of rows loaded
        """
        statement = (
            f"LOAD DATA {'LOCAL ' if local else ''}INFILE %s "
            f"INTO TABLE {quote_identifier(table_name)} "
            "FIELDS TERMINATED BY ',' OPTIONALLY ENCLOSED BY '\"' "
            "LINES TERMINATED BY '\\n'"
        )
        logger.info(f"Loading {csv_path} into {table_name}")
        return self.execute(statement, (csv_path,))

    # -----------------------------------------------------------------
    # Connection Testing & Info Methods
    # -----------------------------------------------------------------

    def test_connection(self) -> Tuple[bool, str]:
        """
        Test MySQL connection with a simple query.

        Returns:
            Tuple of (success, message)
        """
        try:
            if self._connection is None:
                return False, "Not connected to database"

            if fetch_value(self, "SELECT 1") == "1":
                return True, f"Connection successful (MySQL {self._mysql_version})"
            return False, "Connection test query failed"

        except (DatabaseQueryError, DatabaseConnectionError) as e:
            return False, f"Connection test failed: {str(e)}"

    def get_database_info(self) -> Dict[str, Any]:
        """
        Get MySQL database metadata.

        Returns:
            Dictionary with name, type, version, character set, collation
            and table count
        """
        row = fetch_row(
            self,
            "SELECT IFNULL(DATABASE(), ''), VERSION(), "
            "@@character_set_database, @@collation_database"
        )
        if not row:
            raise DatabaseQueryError("Failed to get database info: no row returned")
        name, version, charset, collation = row

        table_count = 0
        if name:
            table_count = int(fetch_value(
                self,
                "SELECT COUNT(*) FROM INFORMATION_SCHEMA.TABLES WHERE TABLE_SCHEMA = %s",
                name
            ))

        return {
            "name": name,
            "type": self.db_type.value,
            "version": version,
            "character_set": charset,
            "collation": collation,
            "table_count": table_count
        }

    # -----------------------------------------------------------------
    # Properties
    # -----------------------------------------------------------------

    @property
    def is_connected(self) -> bool:
        """
        Check if MySQL connection is active.

        Returns:
            bool: True if connected and responsive
        """
        if self._connection is None:
            return False

        try:
            self._connection.ping(reconnect=False)
            return True
        except pymysql.Error:
            self._is_connected = False
            return False

    @property
    def db_type(self) -> DatabaseType:
        """Return MySQL database type."""
        return DatabaseType.MYSQL

    @property
    def mysql_version(self) -> Optional[str]:
        """Get MySQL version string."""
        return self._mysql_version

    # -----------------------------------------------------------------
    # Helper Methods (Private)
    # -----------------------------------------------------------------

    def _get_password(self, config: Dict[str, Any]) -> str:
        """
        Extract password from config, handling environment variables.

        Args:
            config: Connection configuration

        Returns:
            Password string
        """
        password = config.get('password', '')

        # "env:NAME" reads the password from the environment
        if isinstance(password, str) and password.startswith('env:'):
            env_var = password[4:]
            password = os.getenv(env_var, '')
            if not password:
                raise DatabaseConfigError(f"Environment variable {env_var} not set")

        return password

    def _close_quietly(self) -> None:
        if self._connection is None:
            return
        try:
            self._connection.close()
        except pymysql.Error as e:
            logger.debug(f"Ignoring close error after failed connect: {str(e)}")
        self._connection = None

    def __str__(self) -> str:
        """User-friendly string representation."""
        host = self.config.get('host') or self.config.get('unix_socket', 'unknown')
        db = self.config.get('database', '')
        return f"MySQL Connection: {self.connection_name} ({host}/{db})"


# Convenience function to create MySQL connection
def create_mysql_connection(connection_name: str, config: Dict[str, Any]) -> MySQLConnection:
    """
    Create and connect a MySQL connection in one step.

    Args:
        connection_name: Unique name for the connection
        config: MySQL connection configuration

    Returns:
        Connected MySQLConnection instance
    """
    conn = MySQLConnection(connection_name)
    conn.connect(config)
    return conn


def _admin_config(config: Dict[str, Any]) -> Dict[str, Any]:
    """Same server and credentials, no default database."""
    admin = dict(config)
    admin.pop('database', None)
    return admin


def create_database(
    database: str,
    config: Dict[str, Any],
    connection_name: Optional[str] = None
) -> MySQLConnection:
    """
    Create a database if it doesn't exist, then connect to it.

    A failing CREATE DATABASE (most often because the database already
    exists) is logged and ignored, so calling this twice is safe.

    Args:
        database: Name of the database to create or open
        config: Server configuration; its 'database' key is ignored
        connection_name: Name for the returned connection (defaults to database)

    Returns:
        Connected MySQLConnection on the database
    """
    with create_mysql_connection(f"{database}_admin", _admin_config(config)) as admin:
        try:
            admin.execute(f"CREATE DATABASE {quote_identifier(database)}")
            logger.info(f"{database} database created")
        except DatabaseQueryError as e:
            logger.warning(f"CREATE DATABASE {database} failed, opening existing database: {e}")

    return create_mysql_connection(connection_name or database, {**config, 'database': database})


def drop_database(database: str, config: Dict[str, Any]) -> None:
    """
    Drop a database over an administrative connection.

    Raises:
        DatabaseQueryError: If the DROP fails (e.g. the database doesn't exist)
    """
    with create_mysql_connection(f"{database}_admin", _admin_config(config)) as admin:
        try:
            admin.execute(f"DROP DATABASE {quote_identifier(database)}")
        except DatabaseQueryError as e:
            logger.error(f"DROP DATABASE {database} failed: {e}")
            raise
    logger.info(f"{database} database dropped")
