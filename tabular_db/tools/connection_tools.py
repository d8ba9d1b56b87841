"""
Connection Tools for the tabular-db MCP Server.

Tools for opening, closing, creating and dropping databases.
"""

from typing import Dict, Any, Optional
import json
import logging
from pathlib import Path
from ..database.base import DatabaseConfigError
from ..database.mysql import (
    MySQLConnection,
    create_mysql_connection,
    create_database as create_mysql_database,
    drop_database as drop_mysql_database
)

logger = logging.getLogger(__name__)

# Active connections, keyed by connection name
_active_connections: Dict[str, MySQLConnection] = {}

# Config directory
CONFIG_DIR = Path(__file__).parent.parent / "config" / "connections"

SUPPORTED_TYPES = ["mysql"]


def get_connection(connection_name: str) -> Optional[MySQLConnection]:
    """Get an active database connection by name."""
    return _active_connections.get(connection_name)


def load_connection_config(connection_name: str) -> Dict[str, Any]:
    """
    Read CONFIG_DIR/<connection_name>.json.

    Raises:
        DatabaseConfigError: If the file is missing, unreadable or of an
            unsupported database type
    """
    config_file = CONFIG_DIR / f"{connection_name}.json"
    if not config_file.exists():
        raise DatabaseConfigError(f"Config file not found: {config_file}")

    try:
        with open(config_file, 'r') as f:
            config = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise DatabaseConfigError(f"Failed to read config {config_file}: {e}") from e

    db_type = str(config.get("type", "mysql")).lower()
    if db_type not in SUPPORTED_TYPES:
        raise DatabaseConfigError(f"Unsupported database type: {db_type}")
    return config


def list_connections() -> Dict[str, Any]:
    """
    List all configured database connections.

    Returns:
        Dictionary with connection information
    """
    try:
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)

        connections = []
        for config_file in sorted(CONFIG_DIR.glob("*.json")):
            try:
                with open(config_file, 'r') as f:
                    config = json.load(f)
            except (OSError, json.JSONDecodeError) as e:
                logger.warning(f"Failed to read config {config_file}: {e}")
                continue

            connection_name = config_file.stem
            connections.append({
                "name": connection_name,
                "type": config.get("type", "mysql"),
                "host": config.get("host") or config.get("unix_socket", "unknown"),
                "database": config.get("database", ""),
                "config_file": str(config_file),
                "status": "active" if connection_name in _active_connections else "inactive",
                "port": config.get("port", 3306)
            })

        return {
            "success": True,
            "connections": connections,
            "active_count": len(_active_connections),
            "config_dir": str(CONFIG_DIR),
            "note": "Use connect() to activate a connection"
        }

    except Exception as e:
        logger.error(f"Connection listing failed: {e}")
        return {
            "success": False,
            "error": f"Connection listing failed: {str(e)}"
        }


def connect(
    connection_name: str,
    config: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Connect to a database.

    Args:
        connection_name: Name for this connection
        config: Optional connection configuration (if not provided, loads from config file)

    Returns:
        Dictionary with connection status
    """
    try:
        if connection_name in _active_connections:
            return {
                "success": False,
                "error": f"Connection '{connection_name}' is already active",
                "suggestion": "Use disconnect() first or use a different name"
            }

        connection_config = config if config is not None else load_connection_config(connection_name)

        db = create_mysql_connection(connection_name, connection_config)
        _active_connections[connection_name] = db

        success, message = db.test_connection()

        return {
            "success": success,
            "message": message,
            "connection_name": connection_name,
            "database": connection_config.get("database"),
            "host": connection_config.get("host"),
            "mysql_version": db.mysql_version,
            "active_connections": list(_active_connections.keys())
        }

    except Exception as e:
        logger.error(f"Connection failed: {e}")
        return {
            "success": False,
            "error": f"Connection failed: {str(e)}",
            "connection_name": connection_name
        }


def disconnect(connection_name: str) -> Dict[str, Any]:
    """
    Disconnect from a database.

    Args:
        connection_name: Name of the connection to disconnect

    Returns:
        Dictionary with disconnection status
    """
    try:
        db = _active_connections.pop(connection_name, None)
        if db is None:
            return {
                "success": False,
                "error": f"No active connection named '{connection_name}'",
                "active_connections": list(_active_connections.keys())
            }

        db.disconnect()

        return {
            "success": True,
            "message": f"Disconnected from '{connection_name}'",
            "active_connections": list(_active_connections.keys())
        }

    except Exception as e:
        logger.error(f"Disconnection failed: {e}")
        return {
            "success": False,
            "error": f"Disconnection failed: {str(e)}"
        }


def test_connection(connection_name: str) -> Dict[str, Any]:
    """
    Test a database connection.

    Args:
        connection_name: Name of the connection to test

    Returns:
        Dictionary with test results
    """
    try:
        db = get_connection(connection_name)
        if db is None:
            return {
                "success": False,
                "error": f"No active connection named '{connection_name}'",
                "suggestion": "Use connect() first"
            }

        success, message = db.test_connection()

        return {
            "success": success,
            "message": message,
            "connection_name": connection_name,
            "is_connected": db.is_connected,
            "db_type": db.db_type.value
        }

    except Exception as e:
        logger.error(f"Connection test failed: {e}")
        return {
            "success": False,
            "error": f"Connection test failed: {str(e)}"
        }


def get_database_info(connection_name: str) -> Dict[str, Any]:
    """
    Get information about the connected database.

    Args:
        connection_name: Name of the connection

    Returns:
        Dictionary with database information
    """
    try:
        db = get_connection(connection_name)
        if db is None:
            return {
                "success": False,
                "error": f"No active connection named '{connection_name}'"
            }

        info = db.get_database_info()

        return {
            "success": True,
            **info,
            "connection_name": connection_name
        }

    except Exception as e:
        logger.error(f"Database info retrieval failed: {e}")
        return {
            "success": False,
            "error": f"Database info retrieval failed: {str(e)}"
        }


def create_database(
    database: str,
    server: str,
    connection_name: Optional[str] = None,
    config: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Create a database (or open it if it already exists) and register
    a connection to it.

    Args:
        database: Name of the database to create
        server: Name of a configured connection whose server and credentials to use
        connection_name: Name for the new connection (defaults to database)
        config: Optional inline server configuration instead of the config file

    Returns:
        Dictionary with the new connection's status
    """
    name = connection_name or database
    try:
        server_config = config if config is not None else load_connection_config(server)

        db = create_mysql_database(database, server_config, connection_name=name)

        previous = _active_connections.pop(name, None)
        if previous is not None:
            previous.disconnect()
        _active_connections[name] = db

        return {
            "success": True,
            "message": f"Database '{database}' is ready",
            "connection_name": name,
            "database": database,
            "active_connections": list(_active_connections.keys())
        }

    except Exception as e:
        logger.error(f"Database creation failed: {e}")
        return {
            "success": False,
            "error": f"Database creation failed: {str(e)}",
            "database": database
        }


def drop_database(
    database: str,
    server: str,
    config: Optional[Dict[str, Any]] = None
) -> Dict[str, Any]:
    """
    Drop a database.

    Every active connection to the database is disconnected and
    unregistered first.

    Args:
        database: Name of the database to drop
        server: Name of a configured connection whose server and credentials to use
        config: Optional inline server configuration instead of the config file
    """
    try:
        server_config = config if config is not None else load_connection_config(server)

        stale = [
            name for name, db in _active_connections.items()
            if db.config.get("database") == database
        ]
        for name in stale:
            _active_connections.pop(name).disconnect()

        drop_mysql_database(database, server_config)

        return {
            "success": True,
            "message": f"Database '{database}' dropped",
            "active_connections": list(_active_connections.keys())
        }

    except Exception as e:
        logger.error(f"Database drop failed: {e}")
        return {
            "success": False,
            "error": f"Database drop failed: {str(e)}",
            "database": database
        }
