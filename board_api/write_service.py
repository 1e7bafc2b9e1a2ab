"""Write service: data access and threading for a board's post/comment table.

Every post and comment of a board lives in one table (write_<bo_table>).
Threading is encoded in three columns:

    wr_num           thread number shared by a root post and all of its replies;
                     each new root gets MIN(wr_num) - 1 so newer threads sort first
    wr_reply         reply path, one character per depth ('' root, 'A' first reply,
                     'AA' first reply to it); A->Z or Z->A by board reply order
    wr_comment_reply comment path, the same scheme scoped to one post's comments

Key Operations:
    fetch_write_list: notices, one page of writes, total and search-window pointers
    fetch_prev_write / fetch_next_write: search-preserving neighbor navigation
    get_reply_character / get_comment_reply_character: reply path allocation
    create_write_data / update_write_data / delete_write_data: post mutations
    create_comment_data / update_comment_data / delete_comment_data: comment mutations

Reply path allocation reads the sibling extreme and inserts inside one
BEGIN IMMEDIATE transaction (see write_transaction), so concurrent replies
to the same level cannot receive the same character.
"""

import sqlite3
from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional

import structlog

from board_api.backend.db.connection import (
    delete_rows,
    insert_row,
    make_in_placeholders,
    run_query,
    update_rows,
    write_transaction,
)
from board_api.backend.utils.errors import (
    InvalidGoodTypeError,
    ReplyChainExhaustedError,
    WriteHasRepliesError,
    WriteNotFoundError,
)
from board_api.models.board_models import (
    WRITE_EDITABLE_COLUMNS,
    Board,
    SearchParams,
    SearchPredicate,
)
from board_api.search import (
    SearchWindow,
    build_search_predicate,
    resolve_page,
    resolve_sort_order,
    total_pages,
)

logger = structlog.get_logger(__name__)

REPLY_FIRST_CHAR = 'A'
REPLY_LAST_CHAR = 'Z'
REPLY_LEVEL_LIMIT = ord(REPLY_LAST_CHAR) - ord(REPLY_FIRST_CHAR) + 1

GOOD_TYPES = ('good', 'nogood')

COMMENT_EDITABLE_COLUMNS = frozenset({'wr_content', 'wr_option', 'wr_name', 'wr_email', 'wr_homepage', 'wr_password'})

NEIGHBOR_COLUMNS = "wr_id, wr_subject, wr_datetime"


def current_timestamp() -> str:
    """Server timestamp in the table's 'YYYY-MM-DD HH:MM:SS' format."""
    return datetime.now().strftime('%Y-%m-%d %H:%M:%S')


def _dict_from_row(row) -> Optional[Dict[str, Any]]:
    """Convert sqlite3.Row to dict."""
    return dict(row) if row else None


def _editable(fields: Mapping[str, Any], allowed=WRITE_EDITABLE_COLUMNS) -> Dict[str, Any]:
    """Keep only whitelisted columns that were actually set."""
    return {key: value for key, value in fields.items() if key in allowed and value is not None}


class WriteService:
    """Posts and comments of one board.

    Args:
        conn: SQLite connection (row_factory = sqlite3.Row)
        board: Board descriptor; selects the table and threading direction
        popular: Keyword tracker with add_keyword(term); optional
    """

    def __init__(self, conn: sqlite3.Connection, board: Board, popular=None):
        self.conn = conn
        self.board = board
        self.table = board.table_name
        self.popular = popular

    # ------------------------------------------------------------------
    # Search helpers
    # ------------------------------------------------------------------

    def _track_keywords(self, keywords: List[str]) -> None:
        """Forward search terms to the popularity tracker; failures never abort the search."""
        if self.popular is None:
            return
        for term in keywords:
            try:
                self.popular.add_keyword(term)
            except Exception:
                logger.warning(
                    "popular_keyword_failed",
                    exc_info=True,
                    bo_table=self.board.bo_table,
                    term=term,
                )

    def get_search_window(self, search: SearchParams) -> SearchWindow:
        min_spt = self.fetch_minimum_write_number() if search.is_search else None
        return SearchWindow.for_search(search, self.board, min_spt)

    def _list_predicate(self, search: SearchParams, window: SearchWindow) -> SearchPredicate:
        predicate = build_search_predicate(search)
        window_sql, window_params = window.predicate()
        return predicate.merged(window_sql, window_params)

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def fetch_total_count(self, search: SearchParams, window: Optional[SearchWindow] = None) -> int:
        """Count rows matching the search (inside the search window when searching)."""
        if window is None:
            window = self.get_search_window(search)
        predicate = self._list_predicate(search, window)

        row = run_query(
            self.conn,
            f"SELECT COUNT(*) AS total FROM {self.table} WHERE {predicate.where}",
            predicate.params,
        ).fetchone()
        return int(row['total'])

    def fetch_notice_writes(self) -> List[Dict[str, Any]]:
        """Notice posts listed on the board, excluding secret ones."""
        notice_ids = self.board.notice_ids
        if not notice_ids:
            return []

        placeholders, params = make_in_placeholders(notice_ids, prefix="notice")
        rows = run_query(
            self.conn,
            f"""
            SELECT * FROM {self.table}
            WHERE wr_id IN ({placeholders})
            AND wr_is_comment = 0
            AND wr_option NOT LIKE '%secret%'
            """,
            params,
        ).fetchall()
        return [dict(row) for row in rows]

    def fetch_writes(
        self,
        search: SearchParams,
        per_page: int,
        offset: int,
        window: Optional[SearchWindow] = None,
    ) -> List[Dict[str, Any]]:
        """One page of writes for the search, in resolved sort order."""
        if window is None:
            window = self.get_search_window(search)
        predicate = self._list_predicate(search, window)
        order_by = resolve_sort_order(search, self.board)

        params = dict(predicate.params)
        params['per_page'] = per_page
        params['offset'] = offset

        rows = run_query(
            self.conn,
            f"""
            SELECT * FROM {self.table}
            WHERE {predicate.where}
            ORDER BY {order_by}
            LIMIT :per_page OFFSET :offset
            """,
            params,
        ).fetchall()
        return [dict(row) for row in rows]

    def fetch_write_list(self, search: SearchParams) -> Dict[str, Any]:
        """List view: notices, one page of writes, totals and search-window pointers.

        Search terms are reported to the popularity tracker once per call.
        """
        page, per_page, offset = resolve_page(search.page, search.per_page, self.board)
        window = self.get_search_window(search)

        self._track_keywords(build_search_predicate(search).keywords)

        total_count = self.fetch_total_count(search, window)
        writes = self.fetch_writes(search, per_page, offset, window)

        logger.debug(
            "write_list_fetched",
            bo_table=self.board.bo_table,
            total_count=total_count,
            page=page,
            is_search=search.is_search,
        )

        return {
            'notice_writes': self.fetch_notice_writes() if page == 1 and not search.is_search else [],
            'writes': writes,
            'total_count': total_count,
            'page': page,
            'per_page': per_page,
            'total_pages': total_pages(total_count, per_page),
            'spt': window.spt if window.is_search else None,
            'prev_spt': window.previous_partition(),
            'next_spt': window.next_partition(),
        }

    def fetch_write(self, wr_id: int) -> Optional[Dict[str, Any]]:
        row = run_query(
            self.conn, f"SELECT * FROM {self.table} WHERE wr_id = :wr_id", {'wr_id': wr_id}
        ).fetchone()
        return _dict_from_row(row)

    def get_write(self, wr_id: int) -> Dict[str, Any]:
        """Fetch a post (not a comment) or raise WriteNotFoundError."""
        write = self.fetch_write(wr_id)
        if write is None or write['wr_is_comment']:
            raise WriteNotFoundError(wr_id)
        return write

    def get_comment(self, write: Dict[str, Any], comment_id: int) -> Dict[str, Any]:
        """Fetch a comment belonging to write or raise WriteNotFoundError."""
        comment = self.fetch_write(comment_id)
        if comment is None or not comment['wr_is_comment'] or comment['wr_parent'] != write['wr_id']:
            raise WriteNotFoundError(comment_id, kind="Comment")
        return comment

    def fetch_parent_write_by_number(self, wr_num: int) -> Optional[Dict[str, Any]]:
        """Root post of a thread."""
        row = run_query(
            self.conn,
            f"""
            SELECT * FROM {self.table}
            WHERE wr_num = :wr_num
            AND wr_reply = ''
            AND wr_is_comment = 0
            LIMIT 1
            """,
            {'wr_num': wr_num},
        ).fetchone()
        return _dict_from_row(row)

    def fetch_reply_by_write(self, write: Mapping[str, Any]) -> List[Dict[str, Any]]:
        """All replies below a post (any depth) in the same thread."""
        prefix = write['wr_reply'] or ''
        rows = run_query(
            self.conn,
            f"""
            SELECT * FROM {self.table}
            WHERE substr(wr_reply, 1, :prefix_len) = :wr_reply
            AND wr_id <> :wr_id
            AND wr_num = :wr_num
            AND wr_is_comment = 0
            ORDER BY wr_reply
            """,
            {
                'prefix_len': len(prefix),
                'wr_reply': prefix,
                'wr_id': write['wr_id'],
                'wr_num': write['wr_num'],
            },
        ).fetchall()
        return [dict(row) for row in rows]

    def fetch_reply_by_comment(self, comment: Mapping[str, Any]) -> List[Dict[str, Any]]:
        """All replies below a comment within its comment group."""
        prefix = comment['wr_comment_reply'] or ''
        rows = run_query(
            self.conn,
            f"""
            SELECT * FROM {self.table}
            WHERE substr(wr_comment_reply, 1, :prefix_len) = :wr_comment_reply
            AND wr_id <> :wr_id
            AND wr_parent = :wr_parent
            AND wr_comment = :wr_comment
            AND wr_is_comment = 1
            """,
            {
                'prefix_len': len(prefix),
                'wr_comment_reply': prefix,
                'wr_id': comment['wr_id'],
                'wr_parent': comment['wr_parent'],
                'wr_comment': comment['wr_comment'],
            },
        ).fetchall()
        return [dict(row) for row in rows]

    def fetch_comments_by_write(self, write: Mapping[str, Any]) -> List[Dict[str, Any]]:
        """Comments of a post in thread order (group, then comment path)."""
        rows = run_query(
            self.conn,
            f"""
            SELECT * FROM {self.table}
            WHERE wr_parent = :wr_id AND wr_is_comment = 1
            ORDER BY wr_comment, wr_comment_reply
            """,
            {'wr_id': write['wr_id']},
        ).fetchall()
        return [dict(row) for row in rows]

    def fetch_prev_write(self, write: Mapping[str, Any], search: Optional[SearchParams] = None):
        """Previous post in thread order under the same search filter.

        Looks for an earlier reply in the same thread first, then falls back to
        the nearest lower thread number.
        """
        predicate = build_search_predicate(search or SearchParams())
        order_by = "ORDER BY wr_num DESC, wr_reply DESC"
        values = dict(predicate.params)
        values.update({'wr_num': write['wr_num'], 'wr_reply': write['wr_reply'] or ''})

        prev = self._fetch_neighbor_write(
            f"AND {predicate.where} AND wr_num = :wr_num AND wr_reply < :wr_reply", order_by, values
        )
        if prev is None:
            del values['wr_reply']
            prev = self._fetch_neighbor_write(f"AND {predicate.where} AND wr_num < :wr_num", order_by, values)
        return prev

    def fetch_next_write(self, write: Mapping[str, Any], search: Optional[SearchParams] = None):
        """Next post in thread order under the same search filter.

        Looks for a later reply in the same thread first, then falls back to
        the nearest higher thread number.
        """
        predicate = build_search_predicate(search or SearchParams())
        order_by = "ORDER BY wr_num, wr_reply"
        values = dict(predicate.params)
        values.update({'wr_num': write['wr_num'], 'wr_reply': write['wr_reply'] or ''})

        next_write = self._fetch_neighbor_write(
            f"AND {predicate.where} AND wr_num = :wr_num AND wr_reply > :wr_reply", order_by, values
        )
        if next_write is None:
            del values['wr_reply']
            next_write = self._fetch_neighbor_write(f"AND {predicate.where} AND wr_num > :wr_num", order_by, values)
        return next_write

    def _fetch_neighbor_write(self, where: str, order_by: str, values: Mapping[str, Any]):
        row = run_query(
            self.conn,
            f"""
            SELECT {NEIGHBOR_COLUMNS}
            FROM {self.table}
            WHERE wr_is_comment = 0
            {where}
            {order_by}
            LIMIT 1
            """,
            values,
        ).fetchone()
        return _dict_from_row(row)

    def fetch_write_comment_last(self, write: Mapping[str, Any]) -> Optional[str]:
        """Datetime of the newest comment under write's parent post, or None."""
        row = run_query(
            self.conn,
            f"""
            SELECT MAX(wr_datetime) AS wr_last FROM {self.table}
            WHERE wr_parent = :wr_parent AND wr_is_comment = 1
            """,
            {'wr_parent': write['wr_parent']},
        ).fetchone()
        return row['wr_last'] if row else None

    def fetch_minimum_write_number(self) -> int:
        """Smallest thread number on the board (0 for an empty board)."""
        row = run_query(self.conn, f"SELECT MIN(wr_num) AS min_wr_num FROM {self.table}").fetchone()
        return int(row['min_wr_num'] or 0)

    # ------------------------------------------------------------------
    # Reply path allocation
    # ------------------------------------------------------------------

    def fetch_last_reply(self, write: Mapping[str, Any]) -> str:
        """Extreme existing reply character one level below write ('' when none).

        Only rows of the same thread whose reply path starts with write's path
        are considered. MAX for ascending boards, MIN for descending ones.
        """
        prefix = write['wr_reply'] or ''
        order_func = 'MAX' if self.board.reply_order_ascending else 'MIN'
        row = run_query(
            self.conn,
            f"""
            SELECT {order_func}(substr(wr_reply, :reply_len, 1)) AS reply
            FROM {self.table}
            WHERE wr_num = :wr_num
            AND wr_is_comment = 0
            AND substr(wr_reply, :reply_len, 1) <> ''
            AND substr(wr_reply, 1, :prefix_len) = :prefix
            """,
            {
                'reply_len': len(prefix) + 1,
                'prefix_len': len(prefix),
                'prefix': prefix,
                'wr_num': write['wr_num'],
            },
        ).fetchone()
        return (row['reply'] if row else None) or ''

    def get_reply_character(self, write: Mapping[str, Any]) -> str:
        """Reply path for a new reply to write.

        Raises:
            ReplyChainExhaustedError: The level below write already holds 26 replies
        """
        last_reply = self.fetch_last_reply(write)

        if self.board.reply_order_ascending:
            begin_reply_char, end_reply_char, step = REPLY_FIRST_CHAR, REPLY_LAST_CHAR, 1
        else:
            begin_reply_char, end_reply_char, step = REPLY_LAST_CHAR, REPLY_FIRST_CHAR, -1

        if not last_reply:
            reply_char = begin_reply_char
        elif last_reply == end_reply_char:
            logger.warning(
                "reply_chain_exhausted",
                bo_table=self.board.bo_table,
                wr_id=write['wr_id'],
                wr_reply=write['wr_reply'],
            )
            raise ReplyChainExhaustedError(write['wr_reply'] or '', REPLY_LEVEL_LIMIT)
        else:
            reply_char = chr(ord(last_reply) + step)

        return (write['wr_reply'] or '') + reply_char

    def fetch_last_comment_reply(self, comment: Mapping[str, Any]) -> str:
        """Highest comment-path character one level below comment ('' when none)."""
        prefix = comment['wr_comment_reply'] or ''
        row = run_query(
            self.conn,
            f"""
            SELECT MAX(substr(wr_comment_reply, :reply_len, 1)) AS reply
            FROM {self.table}
            WHERE wr_parent = :wr_parent
            AND wr_comment = :wr_comment
            AND wr_is_comment = 1
            AND substr(wr_comment_reply, :reply_len, 1) <> ''
            AND substr(wr_comment_reply, 1, :prefix_len) = :prefix
            """,
            {
                'reply_len': len(prefix) + 1,
                'prefix_len': len(prefix),
                'prefix': prefix,
                'wr_parent': comment['wr_parent'],
                'wr_comment': comment['wr_comment'],
            },
        ).fetchone()
        return (row['reply'] if row else None) or ''

    def get_comment_reply_character(self, comment: Mapping[str, Any]) -> str:
        """Comment path for a reply to comment. Comment paths always run A->Z.

        Raises:
            ReplyChainExhaustedError: The level below comment already holds 26 replies
        """
        last_reply = self.fetch_last_comment_reply(comment)

        if not last_reply:
            reply_char = REPLY_FIRST_CHAR
        elif last_reply == REPLY_LAST_CHAR:
            logger.warning(
                "comment_reply_chain_exhausted",
                bo_table=self.board.bo_table,
                wr_id=comment['wr_id'],
                wr_comment_reply=comment['wr_comment_reply'],
            )
            raise ReplyChainExhaustedError(comment['wr_comment_reply'] or '', REPLY_LEVEL_LIMIT)
        else:
            reply_char = chr(ord(last_reply) + 1)

        return (comment['wr_comment_reply'] or '') + reply_char

    def fetch_next_comment_number(self, write: Mapping[str, Any]) -> int:
        row = run_query(
            self.conn,
            f"""
            SELECT MAX(wr_comment) AS max_comment FROM {self.table}
            WHERE wr_parent = :wr_parent AND wr_is_comment = 1
            """,
            {'wr_parent': write['wr_id']},
        ).fetchone()
        return int(row['max_comment'] or 0) + 1

    # ------------------------------------------------------------------
    # Post mutations
    # ------------------------------------------------------------------

    def create_write_data(
        self,
        fields: Mapping[str, Any],
        member: Optional[Mapping[str, Any]] = None,
        parent_write: Optional[Mapping[str, Any]] = None,
        ip: str = '',
    ) -> int:
        """Create a root post, or a reply when parent_write is given.

        Root posts get wr_num = MIN(wr_num) - 1; replies inherit the parent's
        wr_num and receive the next reply path. The reply path is allocated
        before the insert, so an exhausted level inserts nothing.

        Returns:
            The new wr_id
        """
        member = member or {}
        now = current_timestamp()
        data = _editable(fields)

        with write_transaction(self.conn):
            if parent_write:
                data['wr_num'] = parent_write['wr_num']
                data['wr_parent'] = parent_write['wr_id']
                data['wr_reply'] = self.get_reply_character(parent_write)
            else:
                data['wr_num'] = self.fetch_minimum_write_number() - 1
                data['wr_parent'] = 0
                data['wr_reply'] = ''

            data['wr_is_comment'] = 0
            data['wr_seo_title'] = ''
            data['mb_id'] = member.get('mb_id', '')
            if not data.get('wr_name'):
                data['wr_name'] = member.get('mb_nick', '') or member.get('mb_name', '')
            data['wr_datetime'] = now
            data['wr_last'] = now
            data['wr_ip'] = ip

            wr_id = self.insert_write(data)

        logger.info(
            "write_created",
            bo_table=self.board.bo_table,
            wr_id=wr_id,
            wr_num=data['wr_num'],
            wr_reply=data['wr_reply'],
        )
        return wr_id

    def insert_write(self, data: Mapping[str, Any]) -> int:
        return insert_row(self.conn, self.table, data)

    def update_write_data(self, write: Mapping[str, Any], fields: Mapping[str, Any]) -> None:
        """Merge the set fields into a post and refresh wr_last.

        A category change is copied to the post's comments.
        """
        data = _editable(fields)
        data['wr_seo_title'] = ''
        data['wr_last'] = current_timestamp()

        with write_transaction(self.conn):
            self.update_write(write['wr_id'], data)
            if 'ca_name' in data and data['ca_name'] != write.get('ca_name'):
                self.update_category_by_parent_id(write['wr_id'], data['ca_name'])

        logger.info("write_updated", bo_table=self.board.bo_table, wr_id=write['wr_id'], fields=sorted(data))

    def update_write(self, wr_id: int, data: Mapping[str, Any]) -> None:
        update_rows(self.conn, self.table, {'wr_id': wr_id}, data)

    def update_category_by_parent_id(self, wr_id: int, ca_name: str) -> None:
        update_rows(
            self.conn, self.table, {'wr_parent': wr_id, 'wr_is_comment': 1}, {'ca_name': ca_name}
        )

    def update_write_good(self, wr_id: int, good_type: str) -> Dict[str, int]:
        """Increment the good or nogood counter of a post.

        Returns:
            Dict with the current wr_good and wr_nogood values
        """
        if good_type not in GOOD_TYPES:
            raise InvalidGoodTypeError(good_type)

        column = f"wr_{good_type}"
        with write_transaction(self.conn):
            run_query(
                self.conn,
                f"UPDATE {self.table} SET {column} = {column} + 1 WHERE wr_id = :wr_id",
                {'wr_id': wr_id},
            )

        row = run_query(
            self.conn,
            f"SELECT wr_good, wr_nogood FROM {self.table} WHERE wr_id = :wr_id",
            {'wr_id': wr_id},
        ).fetchone()
        return {'wr_good': row['wr_good'], 'wr_nogood': row['wr_nogood']}

    def delete_write(self, wr_id: int) -> None:
        delete_rows(self.conn, self.table, {'wr_id': wr_id})

    def delete_write_by_parent_id(self, wr_parent: int) -> None:
        delete_rows(self.conn, self.table, {'wr_parent': wr_parent})

    def delete_write_data(self, write: Mapping[str, Any]) -> None:
        """Delete a post together with its comments.

        Raises:
            WriteHasRepliesError: The post still has replies
        """
        replies = self.fetch_reply_by_write(write)
        if replies:
            raise WriteHasRepliesError(write['wr_id'], len(replies))

        with write_transaction(self.conn):
            self.delete_write_by_parent_id(write['wr_id'])
            self.delete_write(write['wr_id'])

        logger.info("write_deleted", bo_table=self.board.bo_table, wr_id=write['wr_id'])

    # ------------------------------------------------------------------
    # Comment mutations
    # ------------------------------------------------------------------

    def create_comment_data(
        self,
        write: Mapping[str, Any],
        fields: Mapping[str, Any],
        member: Optional[Mapping[str, Any]] = None,
        parent_comment: Optional[Mapping[str, Any]] = None,
        ip: str = '',
    ) -> int:
        """Add a comment to a post, or a reply to parent_comment.

        Top-level comments open a new comment group (wr_comment = MAX + 1);
        replies join the parent's group and extend its comment path.
        The post's comment count and wr_last are updated in the same transaction.

        Returns:
            The new comment's wr_id
        """
        member = member or {}
        now = current_timestamp()
        data = _editable(fields, COMMENT_EDITABLE_COLUMNS)

        with write_transaction(self.conn):
            if parent_comment:
                data['wr_comment'] = parent_comment['wr_comment']
                data['wr_comment_reply'] = self.get_comment_reply_character(parent_comment)
            else:
                data['wr_comment'] = self.fetch_next_comment_number(write)
                data['wr_comment_reply'] = ''

            data['wr_num'] = write['wr_num']
            data['wr_parent'] = write['wr_id']
            data['wr_is_comment'] = 1
            data['ca_name'] = write.get('ca_name', '') or ''
            data['mb_id'] = member.get('mb_id', '')
            if not data.get('wr_name'):
                data['wr_name'] = member.get('mb_nick', '') or member.get('mb_name', '')
            data['wr_datetime'] = now
            data['wr_last'] = now
            data['wr_ip'] = ip

            comment_id = self.insert_write(data)

            run_query(
                self.conn,
                f"UPDATE {self.table} SET wr_comment = wr_comment + 1, wr_last = :wr_last WHERE wr_id = :wr_id",
                {'wr_last': now, 'wr_id': write['wr_id']},
            )

        logger.info(
            "comment_created",
            bo_table=self.board.bo_table,
            wr_id=write['wr_id'],
            comment_id=comment_id,
            wr_comment=data['wr_comment'],
            wr_comment_reply=data['wr_comment_reply'],
        )
        return comment_id

    def update_comment_data(self, comment: Mapping[str, Any], fields: Mapping[str, Any]) -> None:
        data = _editable(fields, COMMENT_EDITABLE_COLUMNS)
        data['wr_last'] = current_timestamp()
        with write_transaction(self.conn):
            self.update_write(comment['wr_id'], data)
        logger.info("comment_updated", bo_table=self.board.bo_table, comment_id=comment['wr_id'])

    def delete_comment_data(self, write: Mapping[str, Any], comment: Mapping[str, Any]) -> None:
        """Delete a comment and refresh the post's comment count and wr_last.

        Raises:
            WriteHasRepliesError: The comment still has replies
        """
        replies = self.fetch_reply_by_comment(comment)
        if replies:
            raise WriteHasRepliesError(comment['wr_id'], len(replies))

        with write_transaction(self.conn):
            self.delete_write(comment['wr_id'])
            wr_last = self.fetch_write_comment_last(comment) or write['wr_datetime']
            run_query(
                self.conn,
                f"""
                UPDATE {self.table}
                SET wr_comment = MAX(wr_comment - 1, 0), wr_last = :wr_last
                WHERE wr_id = :wr_id
                """,
                {'wr_last': wr_last, 'wr_id': write['wr_id']},
            )

        logger.info("comment_deleted", bo_table=self.board.bo_table, wr_id=write['wr_id'], comment_id=comment['wr_id'])
