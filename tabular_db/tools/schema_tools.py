"""
Schema Tools for the tabular-db MCP Server.

Tools for listing tables and indices and checking table existence.
"""

from typing import Dict, Any
import logging
from .connection_tools import get_connection

logger = logging.getLogger(__name__)


def list_tables(connection_name: str) -> Dict[str, Any]:
    """
    List all tables in the database.

    Args:
        connection_name: Name of the database connection

    Returns:
        Dictionary with table names
    """
    try:
        db = get_connection(connection_name)
        if not db:
            return {
                "success": False,
                "error": f"No active connection named '{connection_name}'"
            }

        tables = db.list_tables()

        return {
            "success": True,
            "tables": tables,
            "count": len(tables),
            "database": db.config.get("database")
        }

    except Exception as e:
        logger.error(f"Table listing failed: {e}")
        return {
            "success": False,
            "error": f"Table listing failed: {str(e)}"
        }


def list_table_indices(connection_name: str, table_name: str) -> Dict[str, Any]:
    """
    List the non-unique, non-primary indices of a table.

    Args:
        connection_name: Name of the database connection
        table_name: Name of the table

    Returns:
        Dictionary with index names
    """
    try:
        db = get_connection(connection_name)
        if not db:
            return {
                "success": False,
                "error": f"No active connection named '{connection_name}'"
            }

        indices = db.table_indices(table_name)

        return {
            "success": True,
            "table_name": table_name,
            "indices": indices,
            "count": len(indices)
        }

    except Exception as e:
        logger.error(f"Index listing failed: {e}")
        return {
            "success": False,
            "error": f"Index listing failed: {str(e)}"
        }


def table_exists(connection_name: str, table_name: str) -> Dict[str, Any]:
    try:
        db = get_connection(connection_name)
        if not db:
            return {
                "success": False,
                "error": f"No active connection named '{connection_name}'"
            }

        return {
            "success": True,
            "table_name": table_name,
            "exists": db.table_exists(table_name)
        }

    except Exception as e:
        logger.error(f"Table existence check failed: {e}")
        return {
            "success": False,
            "error": f"Table existence check failed: {str(e)}"
        }
