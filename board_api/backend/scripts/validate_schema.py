"""
Database initialization and schema validation script.

Optionally applies schema.sql / seed.sql, creates the post table of every
registered board, then verifies that the database has:
- The registry tables (site_config, boards, popular_search, write_throttle)
- All required site_config keys
- A write_<bo_table> table with the threading columns for every board
- Proper PRAGMA settings (foreign_keys=ON, journal_mode=WAL)

Usage:
    python -m board_api.backend.scripts.validate_schema
    python -m board_api.backend.scripts.validate_schema --init --seed --db-path ./data/board.db
"""

import argparse
import sys

from board_api.backend.db.connection import SCHEMA_PATH, SEED_PATH, apply_sql_file, get_connection, run_query
from board_api.boards import ensure_write_tables
from board_api.models.board_models import WRITE_TABLE_PREFIX


EXPECTED_TABLES = [
    'site_config',
    'boards',
    'popular_search',
    'write_throttle',
]

EXPECTED_CONFIG_KEYS = [
    'title',
    'super_admin',
    'write_delay_seconds',
    'search_part',
    'page_rows',
]

# Columns every write_<bo_table> table must carry
WRITE_TABLE_KEY_COLUMNS = [
    'wr_id', 'wr_num', 'wr_reply', 'wr_parent', 'wr_is_comment',
    'wr_comment', 'wr_comment_reply', 'ca_name', 'wr_subject', 'wr_datetime',
]


class ValidationResult:
    """Tracks validation results."""

    def __init__(self):
        self.passed = []
        self.failed = []

    def add_pass(self, check_name: str):
        self.passed.append(check_name)
        print(f"PASS: {check_name}")

    def add_fail(self, check_name: str, details: str = None):
        msg = f"FAIL: {check_name}"
        if details:
            msg += f"\n  Details: {details}"
        self.failed.append(check_name)
        print(msg)

    def summary(self) -> bool:
        """Print summary and return True if all passed."""
        print("\n" + "=" * 70)
        print(f"VALIDATION SUMMARY: {len(self.passed)} passed, {len(self.failed)} failed")
        print("=" * 70)

        if self.failed:
            print("\nFailed checks:")
            for check in self.failed:
                print(f"  - {check}")
            return False
        print("\nAll checks passed!")
        return True


def initialize_database(conn, seed: bool = False):
    """Apply schema.sql (and seed.sql when seed is True), then create board tables."""
    apply_sql_file(conn, SCHEMA_PATH)
    if seed:
        apply_sql_file(conn, SEED_PATH)
    return ensure_write_tables(conn)


def _table_names(conn) -> set:
    rows = run_query(conn, "SELECT name FROM sqlite_master WHERE type='table'").fetchall()
    return {row['name'] for row in rows}


def validate_tables(conn, result: ValidationResult):
    """Verify the registry tables exist."""
    missing = set(EXPECTED_TABLES) - _table_names(conn)
    if missing:
        result.add_fail("Table existence check", f"Missing tables: {', '.join(sorted(missing))}")
    else:
        result.add_pass(f"All {len(EXPECTED_TABLES)} registry tables exist")


def validate_site_config(conn, result: ValidationResult):
    """Verify all required site_config keys are present."""
    if 'site_config' not in _table_names(conn):
        return

    rows = run_query(conn, "SELECT key FROM site_config").fetchall()
    missing = set(EXPECTED_CONFIG_KEYS) - {row['key'] for row in rows}
    if missing:
        result.add_fail("site_config keys check", f"Missing {len(missing)} keys: {', '.join(sorted(missing))}")
    else:
        result.add_pass(f"All {len(EXPECTED_CONFIG_KEYS)} site_config keys present")


def validate_write_tables(conn, result: ValidationResult):
    """Verify every board has a post table with the threading columns."""
    tables = _table_names(conn)
    if 'boards' not in tables:
        return

    for row in run_query(conn, "SELECT bo_table FROM boards ORDER BY bo_table").fetchall():
        table = f"{WRITE_TABLE_PREFIX}{row['bo_table']}"
        if table not in tables:
            result.add_fail(f"Board '{row['bo_table']}'", f"Missing table {table}")
            continue

        columns = [col['name'] for col in conn.execute(f"PRAGMA table_info({table})").fetchall()]
        missing_cols = [col for col in WRITE_TABLE_KEY_COLUMNS if col not in columns]
        if missing_cols:
            result.add_fail(f"Table '{table}' column check", f"Missing columns: {', '.join(missing_cols)}")
        else:
            result.add_pass(f"Table '{table}' has {len(columns)} columns including threading columns")


def validate_pragma_settings(conn, result: ValidationResult):
    """Verify PRAGMA foreign_keys and journal_mode settings."""
    fk_value = conn.execute("PRAGMA foreign_keys").fetchone()[0]
    if fk_value == 1:
        result.add_pass("PRAGMA foreign_keys = 1")
    else:
        result.add_fail("PRAGMA foreign_keys", f"Expected 1, got {fk_value}")

    journal_mode = conn.execute("PRAGMA journal_mode").fetchone()[0].lower()
    if journal_mode == 'wal':
        result.add_pass("PRAGMA journal_mode = 'wal'")
    else:
        result.add_fail("PRAGMA journal_mode", f"Expected 'wal', got '{journal_mode}'")


def run_validation(conn) -> ValidationResult:
    result = ValidationResult()
    validate_pragma_settings(conn, result)
    validate_tables(conn, result)
    validate_site_config(conn, result)
    validate_write_tables(conn, result)
    return result


def main(argv=None):
    """Initialize (optionally) and validate the database. Returns the exit code."""
    parser = argparse.ArgumentParser(description="Initialize and validate the board database")
    parser.add_argument('--db-path', default=None, help="SQLite file (default: DB_PATH or ./data/board.db)")
    parser.add_argument('--init', action='store_true', help="Apply schema.sql and create board tables")
    parser.add_argument('--seed', action='store_true', help="Also load seed.sql (implies --init)")
    args = parser.parse_args(argv)

    print("=" * 70)
    print("Board Write API - Database Schema Validation")
    print("=" * 70)
    print()

    try:
        with get_connection(args.db_path) as conn:
            if args.init or args.seed:
                tables = initialize_database(conn, seed=args.seed)
                print(f"Initialized {len(tables)} board tables\n")
            result = run_validation(conn)
    except Exception as e:
        print(f"\nFATAL ERROR: {e}")
        return 1

    return 0 if result.summary() else 1


if __name__ == '__main__':
    sys.exit(main())
