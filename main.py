#!/usr/bin/env python3
"""
tabular-db MCP Server

A Model Context Protocol server that runs SQL against MySQL and returns
the results as tables of strings, plus a few schema helpers.
"""

from fastmcp import FastMCP
import logging
from typing import Dict, Any, List, Optional
import json

from tabular_db import __version__
from tabular_db.tools.connection_tools import (
    list_connections,
    connect,
    disconnect,
    test_connection,
    get_database_info,
    create_database,
    drop_database
)
from tabular_db.tools.query_tools import (
    fetch_table,
    fetch_row,
    fetch_column,
    fetch_value,
    copy_from_csv
)
from tabular_db.tools.schema_tools import (
    list_tables,
    list_table_indices,
    table_exists
)

# Set up logging
logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
logger = logging.getLogger(__name__)

# Create MCP server
mcp = FastMCP(
    name="tabular-db",
    version=__version__
)

# ------------------------------------------------------------
# Connection Management Tools
# ------------------------------------------------------------

@mcp.tool()
def list_connections_tool() -> Dict[str, Any]:
    """
    List all configured database connections.

    Returns the connection config files found in the config directory
    and which of them are currently active.
    """
    logger.info("Tool called: list_connections")
    return list_connections()


@mcp.tool()
def connect_tool(
    connection_name: str,
    config: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Connect to a database.

    Args:
        connection_name: Name for this connection
        config: Optional connection configuration dict. If not provided, loads from
                tabular_db/config/connections/{connection_name}.json

    Example with inline config:
        connect_tool("reports", config={
            "host": "localhost",
            "user": "report_user",
            "password": "env:DB_PASSWORD",
            "database": "reports"
        })
    """
    logger.info(f"Tool called: connect - connection: {connection_name}")
    return connect(connection_name, config=config)


@mcp.tool()
def disconnect_tool(connection_name: str) -> Dict[str, Any]:
    """
    Disconnect from a database.

    Args:
        connection_name: Name of the connection to disconnect
    """
    logger.info(f"Tool called: disconnect - connection: {connection_name}")
    return disconnect(connection_name)


@mcp.tool()
def test_connection_tool(connection_name: str) -> Dict[str, Any]:
    """
    Test if a database connection is alive.

    Args:
        connection_name: Name of the connection to test
    """
    logger.info(f"Tool called: test_connection - connection: {connection_name}")
    return test_connection(connection_name)


@mcp.tool()
def get_database_info_tool(connection_name: str) -> Dict[str, Any]:
    """
    Get metadata about a database (version, character set, table count).

    Args:
        connection_name: Name of the connection
    """
    logger.info(f"Tool called: get_database_info - connection: {connection_name}")
    return get_database_info(connection_name)


@mcp.tool()
def create_database_tool(
    database: str,
    server: str,
    connection_name: Optional[str] = None
) -> Dict[str, Any]:
    """
    Create a database, or open it if it already exists, and connect to it.

    Args:
        database: Name of the database
        server: Name of a configured connection providing host and credentials
        connection_name: Name for the new connection (defaults to the database name)
    """
    logger.info(f"Tool called: create_database - database: {database}, server: {server}")
    return create_database(database, server, connection_name=connection_name)


@mcp.tool()
def drop_database_tool(database: str, server: str) -> Dict[str, Any]:
    """
    Drop a database.

    Args:
        database: Name of the database
        server: Name of a configured connection providing host and credentials
    """
    logger.info(f"Tool called: drop_database - database: {database}, server: {server}")
    return drop_database(database, server)

# ------------------------------------------------------------
# Schema Tools
# ------------------------------------------------------------

@mcp.tool()
def list_tables_tool(connection_name: str) -> Dict[str, Any]:
    """
    List all tables in a database.

    Args:
        connection_name: Name of the database connection
    """
    logger.info(f"Tool called: list_tables - connection: {connection_name}")
    return list_tables(connection_name)


@mcp.tool()
def list_table_indices_tool(connection_name: str, table_name: str) -> Dict[str, Any]:
    """
    List the non-unique, non-primary indices of a table.

    Args:
        connection_name: Name of the database connection
        table_name: Name of the table
    """
    logger.info(f"Tool called: list_table_indices - connection: {connection_name}, table: {table_name}")
    return list_table_indices(connection_name, table_name)


@mcp.tool()
def table_exists_tool(connection_name: str, table_name: str) -> Dict[str, Any]:
    """
    Check whether a table exists.

    Args:
        connection_name: Name of the database connection
        table_name: Name of the table
    """
    logger.info(f"Tool called: table_exists - connection: {connection_name}, table: {table_name}")
    return table_exists(connection_name, table_name)

# ------------------------------------------------------------
# Query Tools
# ------------------------------------------------------------

@mcp.tool()
def fetch_table_tool(
    connection_name: str,
    sql_query: str,
    params: Optional[List[Any]] = None
) -> Dict[str, Any]:
    """
    Run a SQL query and return all rows as strings.

    Args:
        connection_name: Name of the database connection
        sql_query: SQL query, with %s placeholders for params
        params: Values bound to the placeholders, in order

    Returns columns, rows and a tab-separated text rendering.
    """
    logger.info(f"Tool called: fetch_table - connection: {connection_name}, query: {sql_query[:100]}")
    return fetch_table(connection_name, sql_query, params)


@mcp.tool()
def fetch_row_tool(
    connection_name: str,
    sql_query: str,
    params: Optional[List[Any]] = None
) -> Dict[str, Any]:
    """
    Run a SQL query that returns at most one row.

    Fails if the query returns more than one row; returns an empty row
    if it returns none.
    """
    logger.info(f"Tool called: fetch_row - connection: {connection_name}, query: {sql_query[:100]}")
    return fetch_row(connection_name, sql_query, params)


@mcp.tool()
def fetch_column_tool(
    connection_name: str,
    sql_query: str,
    params: Optional[List[Any]] = None
) -> Dict[str, Any]:
    """
    Run a single-column SQL query and return its values in order.
    """
    logger.info(f"Tool called: fetch_column - connection: {connection_name}, query: {sql_query[:100]}")
    return fetch_column(connection_name, sql_query, params)


@mcp.tool()
def fetch_value_tool(
    connection_name: str,
    sql_query: str,
    params: Optional[List[Any]] = None
) -> Dict[str, Any]:
    """
    Run a SQL query that must return exactly one row with one column.
    """
    logger.info(f"Tool called: fetch_value - connection: {connection_name}, query: {sql_query[:100]}")
    return fetch_value(connection_name, sql_query, params)


@mcp.tool()
def copy_from_csv_tool(
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
        csv_path: Path of the CSV file (on the server unless local is true)
        local: Read the file on the client side (LOAD DATA LOCAL INFILE)
    """
    logger.info(f"Tool called: copy_from_csv - connection: {connection_name}, table: {table_name}")
    return copy_from_csv(connection_name, table_name, csv_path, local=local)

# ------------------------------------------------------------
# MCP Resources
# ------------------------------------------------------------

@mcp.resource("tables://{connection_name}")
def list_tables_resource(connection_name: str) -> str:
    """
    Expose the table list of a connection as an MCP resource.
    """
    logger.info(f"Resource requested: tables://{connection_name}")

    result = list_tables(connection_name)
    return json.dumps(result, indent=2)


@mcp.resource("connections://list")
def list_connections_resource() -> str:
    """
    Expose connection list as MCP resource.
    """
    logger.info("Resource requested: connections://list")

    result = list_connections()
    return json.dumps(result, indent=2)

# ------------------------------------------------------------
# Server Startup
# ------------------------------------------------------------

def main():
    """Main entry point for the MCP server."""
    # stdout carries the MCP stdio protocol, so the banner goes to the log (stderr)
    logger.info(f"Starting tabular-db MCP Server {__version__} on stdio")
    mcp.run(transport="stdio")

if __name__ == "__main__":
    main()
