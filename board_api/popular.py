"""Popular search keyword tracker.

Records each searched term once per day in popular_search. The write service
treats the tracker as best effort: a failure is logged there and never aborts
the search that triggered it.
"""

import sqlite3
from datetime import date
from typing import Any, Dict, List

import structlog

from board_api.backend.db.connection import run_query

logger = structlog.get_logger(__name__)

MAX_KEYWORD_LENGTH = 50


class PopularSearch:
    """Keyword popularity tracker backed by the popular_search table."""

    def __init__(self, conn: sqlite3.Connection, ip: str = ''):
        self.conn = conn
        self.ip = ip

    def add_keyword(self, term: str) -> None:
        """Record a search term for today; repeated terms on the same day are ignored."""
        term = (term or '').strip()[:MAX_KEYWORD_LENGTH]
        if not term:
            return

        run_query(
            self.conn,
            """
            INSERT OR IGNORE INTO popular_search (pp_word, pp_date, pp_ip)
            VALUES (:pp_word, :pp_date, :pp_ip)
            """,
            {'pp_word': term, 'pp_date': date.today().isoformat(), 'pp_ip': self.ip},
        )
        self.conn.commit()

    def fetch_popular(self, days: int = 7, limit: int = 10) -> List[Dict[str, Any]]:
        """Most searched terms of the last `days` days, most frequent first."""
        rows = run_query(
            self.conn,
            """
            SELECT pp_word, COUNT(*) AS cnt
            FROM popular_search
            WHERE pp_date >= date('now', 'localtime', :since)
            GROUP BY pp_word
            ORDER BY cnt DESC, pp_word ASC
            LIMIT :limit
            """,
            {'since': f'-{int(days)} days', 'limit': limit},
        ).fetchall()
        return [dict(row) for row in rows]
