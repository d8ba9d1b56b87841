import sys
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

import pymysql
import pytest

# Ensure project root on sys.path
_PROJECT_ROOT = Path(__file__).resolve().parent.parent
if str(_PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(_PROJECT_ROOT))

from tabular_db.database.base import DatabaseQueryError  # noqa: E402
from tabular_db.tools import connection_tools  # noqa: E402


# ------------------------------------------------------------
# In-memory QueryHandle
# ------------------------------------------------------------

class FakeCursor:
    def __init__(self, columns: Sequence[str], rows: Sequence[Sequence[str]], fail_at: Optional[int] = None):
        self.columns = list(columns)
        self.rows = [list(r) for r in rows]
        self.fail_at = fail_at
        self.close_calls = 0

    def column_names(self) -> List[str]:
        return list(self.columns)

    def __iter__(self):
        for i, row in enumerate(self.rows):
            if i == self.fail_at:
                raise DatabaseQueryError(f"cannot decode row {i}")
            yield list(row)

    def close(self) -> None:
        self.close_calls += 1

    @property
    def closed(self) -> bool:
        return self.close_calls > 0


class FakeHandle:
    """QueryHandle serving canned results keyed by query text."""

    def __init__(self):
        self.results: Dict[str, Any] = {}
        self.cursors: List[FakeCursor] = []
        self.calls: List[Tuple[str, Tuple[Any, ...]]] = []

    def add(self, query: str, columns: Sequence[str], rows: Sequence[Sequence[str]], fail_at: Optional[int] = None):
        self.results[query] = (columns, rows, fail_at)

    def fail(self, query: str, exc: Exception):
        self.results[query] = exc

    def open_cursor(self, query: str, args: Sequence[Any] = ()) -> FakeCursor:
        self.calls.append((query, tuple(args)))
        outcome = self.results[query]
        if isinstance(outcome, Exception):
            raise outcome
        cursor = FakeCursor(*outcome)
        self.cursors.append(cursor)
        return cursor


@pytest.fixture()
def handle():
    return FakeHandle()


# ------------------------------------------------------------
# Fake PyMySQL server
# ------------------------------------------------------------

def _normalize(query: str) -> str:
    return " ".join(query.split())


class FakePyMySQLCursor:
    def __init__(self, server: "FakeMySQLServer"):
        self.server = server
        self.description = None
        self.rowcount = -1
        self._rows: List[tuple] = []
        self.closed = False
        server.cursors.append(self)

    def execute(self, query: str, args: Any = None) -> int:
        self.server.executed.append((_normalize(query), args))
        columns, rows, rowcount = self.server.respond(_normalize(query), args)
        self.description = tuple((name, None, None, None, None, None, True) for name in columns) or None
        self._rows = list(rows)
        self.rowcount = rowcount if rowcount is not None else len(self._rows)
        return self.rowcount

    def fetchone(self):
        if not self._rows:
            return None
        row = self._rows.pop(0)
        if isinstance(row, Exception):
            raise row
        return row

    def close(self) -> None:
        self.closed = True


class FakePyMySQLConnection:
    def __init__(self, server: "FakeMySQLServer", params: Dict[str, Any]):
        self.server = server
        self.params = params
        self.closed = False
        self.commits = 0

    def cursor(self, cursorclass=None):
        return FakePyMySQLCursor(self.server)

    def ping(self, reconnect: bool = False) -> bool:
        if self.closed:
            raise pymysql.err.InterfaceError(0, "connection closed")
        return True

    def get_autocommit(self) -> bool:
        return bool(self.params.get("autocommit", True))

    def commit(self) -> None:
        self.commits += 1

    def close(self) -> None:
        self.closed = True


class FakeMySQLServer:
    """
    Stand-in for a MySQL server behind pymysql.connect.

    Understands SELECT VERSION(), SELECT 1, CREATE DATABASE and DROP
    DATABASE; anything else must be registered with on().
    """

    def __init__(self):
        self.databases = {"mysql", "reports"}
        self.connections: List[FakePyMySQLConnection] = []
        self.cursors: List[FakePyMySQLCursor] = []
        self.executed: List[Tuple[str, Any]] = []
        self.responses: List[Tuple[str, Any]] = []
        self.refuse: Optional[Exception] = None

    def on(self, query_fragment: str, columns: Sequence[str] = (), rows: Sequence[Any] = (), rowcount: Optional[int] = None):
        self.responses.append((_normalize(query_fragment), (list(columns), list(rows), rowcount)))

    def on_error(self, query_fragment: str, exc: Exception):
        self.responses.append((_normalize(query_fragment), exc))

    def connect(self, **params) -> FakePyMySQLConnection:
        if self.refuse is not None:
            raise self.refuse
        database = params.get("database")
        if database and database not in self.databases:
            raise pymysql.err.OperationalError(1049, f"Unknown database '{database}'")
        conn = FakePyMySQLConnection(self, params)
        self.connections.append(conn)
        return conn

    def respond(self, query: str, args: Any):
        for fragment, outcome in self.responses:
            if fragment in query:
                if isinstance(outcome, Exception):
                    raise outcome
                return outcome

        if query == "SELECT VERSION()":
            return ["VERSION()"], [("8.0.36",)], None
        if query == "SELECT 1":
            return ["1"], [(1,)], None
        if query.startswith("CREATE DATABASE "):
            name = query[len("CREATE DATABASE "):].strip("`")
            if name in self.databases:
                raise pymysql.err.ProgrammingError(1007, f"Can't create database '{name}'; database exists")
            self.databases.add(name)
            return [], [], 1
        if query.startswith("DROP DATABASE "):
            name = query[len("DROP DATABASE "):].strip("`")
            if name not in self.databases:
                raise pymysql.err.OperationalError(1008, f"Can't drop database '{name}'; database doesn't exist")
            self.databases.discard(name)
            return [], [], 0
        raise pymysql.err.ProgrammingError(1064, f"Unexpected query in test: {query}")


@pytest.fixture()
def mysql_server(monkeypatch):
    server = FakeMySQLServer()
    monkeypatch.setattr(pymysql, "connect", server.connect)
    return server


@pytest.fixture()
def mysql_config():
    return {
        "type": "mysql",
        "host": "db.internal",
        "user": "reporter",
        "password": "secret",
        "database": "reports",
    }


@pytest.fixture(autouse=True)
def _clean_connections():
    connection_tools._active_connections.clear()
    yield
    connection_tools._active_connections.clear()
