"""Database connection manager and parameterized row execution helpers.

All statements bind user values as named parameters (":name"). Table and
column names cannot be bound, so every identifier interpolated into SQL is
checked against IDENTIFIER_PATTERN first.
"""

import os
import re
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Dict, Generator, Iterable, Mapping, Optional, Tuple

DEFAULT_DB_PATH = './data/board.db'

SQL_DIR = Path(__file__).parent
SCHEMA_PATH = SQL_DIR / 'schema.sql'
SEED_PATH = SQL_DIR / 'seed.sql'

IDENTIFIER_PATTERN = re.compile(r'^\w+$')


def _resolve_db_path(db_path: Optional[str]) -> str:
    if db_path is None:
        db_path = os.environ.get('DB_PATH', DEFAULT_DB_PATH)
    return db_path


def open_connection(db_path: str = None) -> sqlite3.Connection:
    """Open an SQLite connection with FK enforcement, WAL mode and sqlite3.Row rows.

    The caller owns the connection and must close it. The FastAPI lifespan uses
    this for the application-wide connection.
    """
    conn = sqlite3.connect(_resolve_db_path(db_path), check_same_thread=False)
    conn.row_factory = sqlite3.Row
    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute("PRAGMA journal_mode = WAL")
    return conn


@contextmanager
def get_connection(db_path: str = None) -> Generator[sqlite3.Connection, None, None]:
    """
    Context manager that yields an SQLite connection with FK enforcement and WAL mode.

    Args:
        db_path: Path to the SQLite database file. If None, reads from DB_PATH
                 environment variable, falling back to './data/board.db'.

    Yields:
        sqlite3.Connection: Database connection with foreign keys enabled,
                           WAL mode active, and row_factory set to sqlite3.Row.

    Example:
        with get_connection() as conn:
            rows = run_query(conn, "SELECT * FROM boards").fetchall()
    """
    conn = None
    try:
        conn = open_connection(db_path)
        yield conn
    finally:
        if conn is not None:
            conn.close()


@contextmanager
def write_transaction(conn: sqlite3.Connection) -> Generator[sqlite3.Connection, None, None]:
    """Run a read-then-write sequence inside a single BEGIN IMMEDIATE transaction.

    BEGIN IMMEDIATE takes the database write lock up front, so two writers
    allocating reply paths in the same thread cannot both read the same
    sibling maximum. Commits on success and rolls back on any exception.
    If the connection is already inside a transaction, the statements join it
    and the outer owner decides when to commit.
    """
    if conn.in_transaction:
        yield conn
        return

    conn.execute("BEGIN IMMEDIATE")
    try:
        yield conn
    except BaseException:
        conn.rollback()
        raise
    else:
        conn.commit()


def check_identifier(name: str) -> str:
    """Return name unchanged if it is a safe SQL identifier, else raise ValueError."""
    if not isinstance(name, str) or not IDENTIFIER_PATTERN.match(name):
        raise ValueError(f"Unsafe SQL identifier: {name!r}")
    return name


def make_in_placeholders(values: Iterable[Any], prefix: str = "in") -> Tuple[str, Dict[str, Any]]:
    """Build named placeholders for an IN (...) clause.

    Example:
        >>> make_in_placeholders([3, 5], prefix="notice")
        (':notice_0, :notice_1', {'notice_0': 3, 'notice_1': 5})
    """
    params = {f"{prefix}_{i}": value for i, value in enumerate(values)}
    placeholders = ", ".join(f":{key}" for key in params)
    return placeholders, params


def run_query(
    conn: sqlite3.Connection,
    query: str,
    params: Optional[Mapping[str, Any]] = None,
) -> sqlite3.Cursor:
    """Execute a query template with named parameters and return the cursor."""
    return conn.execute(query, dict(params or {}))


def _match_clause(match: Mapping[str, Any]) -> Tuple[str, Dict[str, Any]]:
    if not match:
        raise ValueError("A match predicate is required")
    clauses = []
    params = {}
    for column in match:
        check_identifier(column)
        clauses.append(f"{column} = :match_{column}")
        params[f"match_{column}"] = match[column]
    return " AND ".join(clauses), params


def insert_row(conn: sqlite3.Connection, table: str, fields: Mapping[str, Any]) -> int:
    """Insert one row and return its new primary key.

    Does not commit; callers own the transaction boundary.
    """
    check_identifier(table)
    columns = [check_identifier(column) for column in fields]
    placeholders = ", ".join(f":{column}" for column in columns)
    query = f"INSERT INTO {table} ({', '.join(columns)}) VALUES ({placeholders})"
    cursor = conn.execute(query, dict(fields))
    return cursor.lastrowid


def update_rows(
    conn: sqlite3.Connection,
    table: str,
    match: Mapping[str, Any],
    fields: Mapping[str, Any],
) -> int:
    """Update rows matching every column in match. Returns the affected row count."""
    check_identifier(table)
    if not fields:
        return 0
    assignments = []
    params = {}
    for column in fields:
        check_identifier(column)
        assignments.append(f"{column} = :set_{column}")
        params[f"set_{column}"] = fields[column]
    where_sql, match_params = _match_clause(match)
    params.update(match_params)
    cursor = conn.execute(f"UPDATE {table} SET {', '.join(assignments)} WHERE {where_sql}", params)
    return cursor.rowcount


def delete_rows(conn: sqlite3.Connection, table: str, match: Mapping[str, Any]) -> int:
    """Delete rows matching every column in match. Returns the affected row count."""
    check_identifier(table)
    where_sql, params = _match_clause(match)
    cursor = conn.execute(f"DELETE FROM {table} WHERE {where_sql}", params)
    return cursor.rowcount


def load_site_config(conn: sqlite3.Connection) -> Dict[str, str]:
    """Load every site_config row into a key -> value dict."""
    rows = run_query(conn, "SELECT key, value FROM site_config").fetchall()
    return {row['key']: row['value'] for row in rows}


def get_config(key: str, db_path: str = None) -> str:
    """
    Retrieve a configuration value from the site_config table.

    Args:
        key: The configuration key to look up.
        db_path: Path to the SQLite database file. If None, reads from DB_PATH
                 environment variable, falling back to './data/board.db'.

    Returns:
        str: The configuration value for the given key.

    Raises:
        KeyError: If the configuration key does not exist in the database.

    Example:
        delay = int(get_config('write_delay_seconds'))
    """
    with get_connection(db_path) as conn:
        row = run_query(
            conn, "SELECT value FROM site_config WHERE key = :key", {"key": key}
        ).fetchone()

        if row is None:
            raise KeyError(f"Config key not found: {key}")

        return row['value']


def apply_sql_file(conn: sqlite3.Connection, path: Path) -> None:
    """Execute a .sql script (schema.sql, seed.sql) against the connection.

    Scripts use CREATE TABLE IF NOT EXISTS / INSERT OR IGNORE, so re-running
    them against an initialized database is a no-op.
    """
    conn.executescript(Path(path).read_text())
