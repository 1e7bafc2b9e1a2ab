"""
Shared pytest fixtures for the Board Write API tests.

These fixtures provide test databases, schema setup, board descriptors and
an HTTP client backed by a temporary database.
All tests are behavioral - they verify what the code should do, not how it does it.
"""

import os
import sqlite3
import tempfile
from pathlib import Path

import pytest

# Keep test runs from writing into the working directory's logs/
os.environ.setdefault("LOG_DIR", tempfile.mkdtemp(prefix="board_api_test_logs_"))

# Paths to SQL files relative to the repository root
_DB_DIR = Path(__file__).parent.parent / "board_api" / "backend" / "db"
SCHEMA_SQL_PATH = _DB_DIR / "schema.sql"
SEED_SQL_PATH = _DB_DIR / "seed.sql"


def _exec_sql_file(conn, path):
    """Execute a .sql file on an open connection, handling PRAGMAs separately."""
    sql = path.read_text()
    # executescript auto-commits and resets per-connection PRAGMAs, so run them separately
    conn.execute("PRAGMA foreign_keys = ON")
    conn.execute("PRAGMA journal_mode = WAL")
    lines = [line for line in sql.splitlines()
             if not line.strip().upper().startswith("PRAGMA")]
    conn.executescript("\n".join(lines))


def _load_schema(conn):
    """Execute schema.sql on an open connection."""
    _exec_sql_file(conn, SCHEMA_SQL_PATH)


def _load_seed(conn):
    """Execute seed.sql on an open connection (schema must already be loaded)."""
    _exec_sql_file(conn, SEED_SQL_PATH)


def _connect(db_path):
    # TestClient runs the app in a worker thread
    conn = sqlite3.connect(db_path, check_same_thread=False)
    conn.row_factory = sqlite3.Row
    return conn


def _set_config(conn, key, value):
    conn.execute("UPDATE site_config SET value = ? WHERE key = ?", (str(value), key))
    conn.commit()


@pytest.fixture
def temp_db_path():
    """Provide a temporary database file path that is cleaned up after test."""
    with tempfile.NamedTemporaryFile(suffix='.db', delete=False) as f:
        db_path = f.name

    yield db_path

    if os.path.exists(db_path):
        os.unlink(db_path)
    for suffix in ['-wal', '-shm']:
        wal_file = db_path + suffix
        if os.path.exists(wal_file):
            os.unlink(wal_file)


@pytest.fixture
def schema_initialized_db(temp_db_path):
    """Provide a database with schema.sql applied and no seed rows."""
    conn = _connect(temp_db_path)
    _load_schema(conn)
    yield conn
    conn.close()


@pytest.fixture
def seeded_db(temp_db_path):
    """
    Provide a database with schema, site config and boards seeded.

    The write_<bo_table> table of every seeded board is created as well.
    """
    from board_api.boards import ensure_write_tables

    conn = _connect(temp_db_path)
    _load_schema(conn)
    _load_seed(conn)
    ensure_write_tables(conn)
    conn.execute("PRAGMA foreign_keys = ON")
    yield conn
    conn.close()


@pytest.fixture
def free_board(seeded_db):
    """The seeded 'free' board: ascending reply order, natural thread sort."""
    from board_api.boards import load_board
    return load_board(seeded_db, 'free')


@pytest.fixture
def qa_board(seeded_db):
    """The seeded 'qa' board: descending reply order, categories, sorted by date."""
    from board_api.boards import load_board
    return load_board(seeded_db, 'qa')


class RecordingTracker:
    """Keyword tracker double that remembers every term it receives."""

    def __init__(self):
        self.terms = []

    def add_keyword(self, term):
        self.terms.append(term)


@pytest.fixture
def tracker():
    return RecordingTracker()


@pytest.fixture
def write_service(seeded_db, free_board, tracker):
    """WriteService for the 'free' board with a recording keyword tracker."""
    from board_api.write_service import WriteService
    return WriteService(seeded_db, free_board, popular=tracker)


@pytest.fixture
def make_post():
    """Factory creating a root post through a WriteService and returning the stored row."""
    def _make_post(service, subject="Subject", content="Content", mb_id='', **fields):
        data = {'wr_subject': subject, 'wr_content': content}
        data.update(fields)
        member = {'mb_id': mb_id} if mb_id else None
        wr_id = service.create_write_data(data, member=member)
        return service.fetch_write(wr_id)
    return _make_post


@pytest.fixture
def test_client(temp_db_path):
    """Provide a FastAPI TestClient backed by a temporary seeded database.

    Sets DB_PATH env var so the app lifespan connects to the temp database.
    The write throttle is disabled (write_delay_seconds = 0); see throttled_client.
    Uses context manager to ensure lifespan startup/shutdown run properly.
    """
    from fastapi.testclient import TestClient

    from board_api.api.app import app

    old_db_path = os.environ.get('DB_PATH')
    os.environ['DB_PATH'] = temp_db_path

    conn = _connect(temp_db_path)
    _load_schema(conn)
    _load_seed(conn)
    _set_config(conn, 'write_delay_seconds', 0)
    conn.close()

    with TestClient(app) as client:
        yield client

    if old_db_path is not None:
        os.environ['DB_PATH'] = old_db_path
    elif 'DB_PATH' in os.environ:
        del os.environ['DB_PATH']


@pytest.fixture
def throttled_client(test_client):
    """test_client with a 30 second write delay."""
    _set_config(test_client.app.state.db, 'write_delay_seconds', 30)
    return test_client
