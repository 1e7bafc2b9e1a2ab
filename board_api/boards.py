"""Board registry.

Board descriptors live in the boards table. Each board owns one post/comment
table named write_<bo_table>, created on demand from WRITE_TABLE_DDL.
"""

import sqlite3
from typing import Any, List, Mapping, Optional

import structlog

from board_api.backend.db.connection import check_identifier, load_site_config, run_query
from board_api.backend.utils.errors import BoardNotFoundError
from board_api.models.board_models import Board, WRITE_TABLE_PREFIX

logger = structlog.get_logger(__name__)

WRITE_TABLE_DDL = """
CREATE TABLE IF NOT EXISTS {table} (
    wr_id INTEGER PRIMARY KEY AUTOINCREMENT,
    wr_num INTEGER NOT NULL DEFAULT 0,
    wr_reply VARCHAR(10) NOT NULL DEFAULT '',
    wr_parent INTEGER NOT NULL DEFAULT 0,
    wr_is_comment INTEGER NOT NULL DEFAULT 0 CHECK (wr_is_comment IN (0, 1)),
    wr_comment INTEGER NOT NULL DEFAULT 0,
    wr_comment_reply VARCHAR(5) NOT NULL DEFAULT '',
    ca_name VARCHAR(255) NOT NULL DEFAULT '',
    wr_option VARCHAR(40) NOT NULL DEFAULT '',
    wr_subject VARCHAR(255) NOT NULL DEFAULT '',
    wr_content TEXT NOT NULL DEFAULT '',
    wr_seo_title VARCHAR(255) NOT NULL DEFAULT '',
    wr_link1 TEXT NOT NULL DEFAULT '',
    wr_link2 TEXT NOT NULL DEFAULT '',
    wr_hit INTEGER NOT NULL DEFAULT 0,
    wr_good INTEGER NOT NULL DEFAULT 0,
    wr_nogood INTEGER NOT NULL DEFAULT 0,
    mb_id VARCHAR(20) NOT NULL DEFAULT '',
    wr_password VARCHAR(255) NOT NULL DEFAULT '',
    wr_name VARCHAR(255) NOT NULL DEFAULT '',
    wr_email VARCHAR(255) NOT NULL DEFAULT '',
    wr_homepage VARCHAR(255) NOT NULL DEFAULT '',
    wr_datetime TIMESTAMP NOT NULL,
    wr_last TIMESTAMP NOT NULL,
    wr_ip VARCHAR(255) NOT NULL DEFAULT ''
);
CREATE INDEX IF NOT EXISTS idx_{table}_num_reply ON {table} (wr_is_comment, wr_num, wr_reply);
CREATE INDEX IF NOT EXISTS idx_{table}_parent ON {table} (wr_parent, wr_is_comment, wr_comment);
"""


def ensure_write_table(conn: sqlite3.Connection, bo_table: str) -> str:
    """Create the post/comment table for a board if it does not exist.

    Returns:
        The table name
    """
    table = check_identifier(f"{WRITE_TABLE_PREFIX}{bo_table}")
    conn.executescript(WRITE_TABLE_DDL.format(table=table))
    return table


def ensure_write_tables(conn: sqlite3.Connection) -> List[str]:
    """Create post tables for every registered board."""
    tables = []
    for row in run_query(conn, "SELECT bo_table FROM boards ORDER BY bo_table").fetchall():
        tables.append(ensure_write_table(conn, row['bo_table']))
    logger.info("write_tables_ensured", count=len(tables))
    return tables


def list_boards(conn: sqlite3.Connection, config: Optional[Mapping[str, Any]] = None) -> List[Board]:
    if config is None:
        config = load_site_config(conn)
    rows = run_query(conn, "SELECT * FROM boards ORDER BY bo_table").fetchall()
    return [Board.from_row(row, config) for row in rows]


def load_board(conn: sqlite3.Connection, bo_table: str, config: Optional[Mapping[str, Any]] = None) -> Board:
    """Load one board descriptor.

    Args:
        conn: SQLite connection
        bo_table: Board identifier
        config: Site configuration used for inherited settings; read from
            site_config when not given

    Raises:
        BoardNotFoundError: If no board is registered under bo_table
    """
    row = run_query(
        conn, "SELECT * FROM boards WHERE bo_table = :bo_table", {'bo_table': bo_table}
    ).fetchone()
    if row is None:
        raise BoardNotFoundError(bo_table)
    if config is None:
        config = load_site_config(conn)
    return Board.from_row(row, config)
