"""
Tests for the database schema and per-board post tables

These tests verify:
- schema.sql creates the registry tables
- Constraints: board identifiers, unique popular keywords, one throttle row per token/action
- seed.sql provides the site configuration and the initial boards
- ensure_write_table() creates write_<bo_table> with threading columns and indexes
- load_board() maps board rows to Board descriptors
"""

import sqlite3

import pytest

from board_api.backend.utils.errors import BoardNotFoundError
from board_api.boards import ensure_write_table, ensure_write_tables, list_boards, load_board

EXPECTED_TABLES = ['site_config', 'boards', 'popular_search', 'write_throttle']


def _tables(conn):
    return {row['name'] for row in conn.execute("SELECT name FROM sqlite_master WHERE type='table'")}


class TestSchemaCreation:

    def test_registry_tables_exist(self, schema_initialized_db):
        missing = set(EXPECTED_TABLES) - _tables(schema_initialized_db)

        assert not missing, f"Missing tables: {missing}"

    @pytest.mark.parametrize("bo_table", ["bad-name", "", "a b", "x;y", "ok-"])
    def test_board_identifier_constraint(self, schema_initialized_db, bo_table):
        with pytest.raises(sqlite3.IntegrityError):
            schema_initialized_db.execute("INSERT INTO boards (bo_table) VALUES (:t)", {'t': bo_table})

    def test_valid_board_identifier_gets_table(self, schema_initialized_db):
        schema_initialized_db.execute("INSERT INTO boards (bo_table) VALUES ('Board_2')")

        assert ensure_write_tables(schema_initialized_db) == ['write_Board_2']

    def test_popular_keyword_unique_per_day(self, schema_initialized_db):
        insert = "INSERT INTO popular_search (pp_word, pp_date) VALUES ('python', '2026-10-19')"
        schema_initialized_db.execute(insert)

        with pytest.raises(sqlite3.IntegrityError):
            schema_initialized_db.execute(insert)

    def test_throttle_primary_key(self, schema_initialized_db):
        insert = (
            "INSERT INTO write_throttle (token_hash, action_type, last_write_at) "
            "VALUES ('h', 'write', '2026-10-19T00:00:00+00:00')"
        )
        schema_initialized_db.execute(insert)

        with pytest.raises(sqlite3.IntegrityError):
            schema_initialized_db.execute(insert)

    def test_board_defaults(self, schema_initialized_db):
        schema_initialized_db.execute("INSERT INTO boards (bo_table) VALUES ('news')")
        board = load_board(schema_initialized_db, 'news')

        assert board.reply_order_ascending
        assert board.search_part == 10000
        assert board.page_rows == 15
        assert board.sort_field == ''


class TestSeedData:

    def test_site_config_keys(self, seeded_db):
        keys = {row['key'] for row in seeded_db.execute("SELECT key FROM site_config")}

        assert {'title', 'super_admin', 'write_delay_seconds', 'search_part', 'page_rows'} <= keys

    def test_seeded_boards(self, seeded_db):
        boards = {board.bo_table: board for board in list_boards(seeded_db)}

        assert set(boards) == {'free', 'qa'}
        assert boards['free'].reply_order_ascending
        assert not boards['qa'].reply_order_ascending
        assert boards['qa'].categories == ['General', 'Bug', 'Feature']


class TestWriteTables:

    def test_write_table_columns(self, seeded_db):
        columns = {row['name'] for row in seeded_db.execute("PRAGMA table_info(write_free)")}

        for column in ('wr_id', 'wr_num', 'wr_reply', 'wr_parent', 'wr_is_comment',
                       'wr_comment', 'wr_comment_reply', 'ca_name', 'wr_option',
                       'wr_subject', 'wr_content', 'wr_datetime', 'wr_last', 'wr_ip'):
            assert column in columns, f"write_free is missing {column}"

    def test_write_table_indexes(self, seeded_db):
        indexes = {row['name'] for row in seeded_db.execute("PRAGMA index_list(write_free)")}

        assert 'idx_write_free_num_reply' in indexes
        assert 'idx_write_free_parent' in indexes

    def test_ensure_is_idempotent(self, seeded_db):
        assert ensure_write_tables(seeded_db) == ['write_free', 'write_qa']
        assert ensure_write_tables(seeded_db) == ['write_free', 'write_qa']

    def test_is_comment_flag_constraint(self, seeded_db):
        with pytest.raises(sqlite3.IntegrityError):
            seeded_db.execute(
                "INSERT INTO write_free (wr_is_comment, wr_datetime, wr_last) VALUES (2, 'x', 'x')"
            )

    def test_unsafe_board_name_is_rejected(self, schema_initialized_db):
        with pytest.raises(ValueError):
            ensure_write_table(schema_initialized_db, "x; DROP TABLE boards")

    def test_unknown_board(self, seeded_db):
        with pytest.raises(BoardNotFoundError):
            load_board(seeded_db, 'nope')
