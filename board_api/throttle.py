"""Write-rate throttle.

Keeps one row per (token hash, action type) holding the time of the last
successful write. A write inside the configured cool-down window is throttled.
The raw Authorization token is never stored; only its SHA-256 digest.
"""

import hashlib
import math
import sqlite3
from datetime import datetime, timedelta, timezone
from typing import Optional

import structlog

from board_api.backend.db.connection import run_query

logger = structlog.get_logger(__name__)

ACTION_WRITE = "write"
ACTION_COMMENT = "comment"


def hash_token(token: str) -> str:
    """SHA-256 hex digest of a bearer token."""
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


class ThrottleService:
    """Per-token, per-action cool-down backed by the write_throttle table.

    Args:
        conn: SQLite connection
        delay_seconds: Cool-down window; 0 or less disables throttling
    """

    def __init__(self, conn: sqlite3.Connection, delay_seconds: int = 0):
        self.conn = conn
        self.delay_seconds = delay_seconds

    def use_throttle(self) -> bool:
        return self.delay_seconds > 0

    def _last_write_at(self, token_hash: str, action_type: str) -> Optional[datetime]:
        row = run_query(
            self.conn,
            """
            SELECT last_write_at FROM write_throttle
            WHERE token_hash = :token_hash AND action_type = :action_type
            """,
            {'token_hash': token_hash, 'action_type': action_type},
        ).fetchone()
        if row is None:
            return None
        return datetime.fromisoformat(row['last_write_at'])

    def retry_after(self, token_hash: str, action_type: str, now: Optional[datetime] = None) -> int:
        """Seconds left in the cool-down window (0 when not throttled)."""
        last = self._last_write_at(token_hash, action_type)
        if last is None:
            return 0
        now = now or datetime.now(timezone.utc)
        remaining = ((last + timedelta(seconds=self.delay_seconds)) - now).total_seconds()
        return math.ceil(remaining) if remaining > 0 else 0

    def is_throttled(self, token_hash: str, action_type: str, now: Optional[datetime] = None) -> bool:
        """True when the token wrote this action type less than delay_seconds ago."""
        if not self.use_throttle():
            return False
        return self.retry_after(token_hash, action_type, now) > 0

    def record_success(self, token_hash: str, action_type: str, now: Optional[datetime] = None) -> None:
        """Stamp a successful write, starting a new cool-down window."""
        now = now or datetime.now(timezone.utc)
        run_query(
            self.conn,
            """
            INSERT INTO write_throttle (token_hash, action_type, last_write_at)
            VALUES (:token_hash, :action_type, :last_write_at)
            ON CONFLICT (token_hash, action_type)
            DO UPDATE SET last_write_at = excluded.last_write_at
            """,
            {'token_hash': token_hash, 'action_type': action_type, 'last_write_at': now.isoformat()},
        )
        self.conn.commit()
        logger.debug("throttle_recorded", action_type=action_type)
