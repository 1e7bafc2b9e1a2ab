"""Board data models for the Board Write API.

Data Models:
    Board: read-only board descriptor (table, reply order, sort, notices, search partition)
    SearchParams: list/search request parameters shared by list, count and neighbor queries
    SearchPredicate: a built WHERE fragment with its bound values and trackable keywords

Column whitelists live here as well, so that every identifier interpolated
into SQL by the write service is checked against a fixed set.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional


WRITE_TABLE_PREFIX = "write_"

# Every column of a board's post/comment table.
WRITE_TABLE_COLUMNS = frozenset({
    'wr_id', 'wr_num', 'wr_reply', 'wr_parent', 'wr_is_comment', 'wr_comment',
    'wr_comment_reply', 'ca_name', 'wr_option', 'wr_subject', 'wr_content',
    'wr_seo_title', 'wr_link1', 'wr_link2', 'wr_hit', 'wr_good', 'wr_nogood',
    'mb_id', 'wr_password', 'wr_name', 'wr_email', 'wr_homepage',
    'wr_datetime', 'wr_last', 'wr_ip',
})

# Columns a client payload may set on insert/update. Threading columns
# (wr_num, wr_reply, wr_parent, ...) and server stamps are computed.
WRITE_EDITABLE_COLUMNS = frozenset({
    'ca_name', 'wr_option', 'wr_subject', 'wr_content', 'wr_link1', 'wr_link2',
    'wr_name', 'wr_email', 'wr_homepage', 'wr_password',
})

# Public sort aliases -> ORDER BY expressions.
BOARD_SORT_FIELDS: Dict[str, str] = {
    'wr_num, wr_reply': 'wr_num, wr_reply',
    'wr_datetime': 'wr_datetime',
    'wr_hit': 'wr_hit',
    'wr_good': 'wr_good',
    'wr_nogood': 'wr_nogood',
    'wr_subject': 'wr_subject',
    'wr_name': 'wr_name',
    'wr_last': 'wr_last',
    'wr_comment': 'wr_comment',
    'latest': 'wr_datetime desc',
    'recent_activity': 'wr_last desc',
    'most_viewed': 'wr_hit desc',
    'most_recommended': 'wr_good desc',
}

DEFAULT_SORT = 'wr_num, wr_reply'
DEFAULT_SEARCH_PART = 10000
DEFAULT_PAGE_ROWS = 15
MAX_PAGE_ROWS = 100


def _positive_int(*candidates: Any) -> int:
    """First candidate that parses as a positive integer."""
    for value in candidates:
        try:
            number = int(value)
        except (TypeError, ValueError):
            continue
        if number > 0:
            return number
    raise ValueError("no positive integer among candidates")


@dataclass(frozen=True)
class Board:
    """A board descriptor.

    Attributes:
        bo_table: Board identifier; the post table is write_<bo_table>
        subject: Display name
        reply_order_ascending: True assigns reply characters A->Z, False Z->A
        sort_field: Default ORDER BY expression ('' means natural thread order)
        notice: Comma separated wr_id list of notice posts
        search_part: Width of the wr_num window used by windowed searches
        use_category: Whether posts carry a category
        category_list: Pipe separated category names
        page_rows: Default page size
    """
    bo_table: str
    subject: str = ''
    reply_order_ascending: bool = True
    sort_field: str = ''
    notice: str = ''
    search_part: int = DEFAULT_SEARCH_PART
    use_category: bool = False
    category_list: str = ''
    page_rows: int = DEFAULT_PAGE_ROWS

    @property
    def table_name(self) -> str:
        return f"{WRITE_TABLE_PREFIX}{self.bo_table}"

    @property
    def notice_ids(self) -> List[int]:
        """Notice post ids parsed from the comma separated notice string."""
        ids = []
        for part in self.notice.split(','):
            part = part.strip()
            if part.isdigit():
                ids.append(int(part))
        return ids

    @property
    def categories(self) -> List[str]:
        return [name.strip() for name in self.category_list.split('|') if name.strip()]

    @classmethod
    def from_row(cls, row, config: Optional[Mapping[str, Any]] = None) -> "Board":
        """Build a Board from a boards table row.

        A zero bo_search_part or bo_page_rows inherits the site_config value
        (search_part, page_rows), then the module default.
        """
        config = config or {}
        return cls(
            bo_table=row['bo_table'],
            subject=row['bo_subject'] or '',
            reply_order_ascending=bool(row['bo_reply_order']),
            sort_field=row['bo_sort_field'] or '',
            notice=row['bo_notice'] or '',
            search_part=_positive_int(row['bo_search_part'], config.get('search_part'), DEFAULT_SEARCH_PART),
            use_category=bool(row['bo_use_category']),
            category_list=row['bo_category_list'] or '',
            page_rows=_positive_int(row['bo_page_rows'], config.get('page_rows'), DEFAULT_PAGE_ROWS),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            'bo_table': self.bo_table,
            'bo_subject': self.subject,
            'bo_reply_order': 1 if self.reply_order_ascending else 0,
            'bo_sort_field': self.sort_field,
            'bo_notice': self.notice,
            'bo_search_part': self.search_part,
            'bo_use_category': 1 if self.use_category else 0,
            'bo_category_list': self.category_list,
            'bo_page_rows': self.page_rows,
            'categories': self.categories,
        }


@dataclass
class SearchParams:
    """List and search parameters.

    Attributes:
        sca: Category filter (exact match)
        sfl: Field spec, "field||field" optionally followed by ",0" to search comments
        stx: Keyword text; space separated terms
        sop: Operator between terms ("and" / "or")
        sst: Requested sort field
        sod: Requested sort direction ("asc" / "desc")
        spt: Start of the wr_num search window (None means the table minimum)
        page: 1-based page number
        per_page: Page size (None means the board default)
    """
    sca: str = ''
    sfl: str = ''
    stx: str = ''
    sop: str = 'and'
    sst: str = ''
    sod: str = ''
    spt: Optional[int] = None
    page: int = 1
    per_page: Optional[int] = None

    @property
    def has_keyword(self) -> bool:
        return bool(self.stx)

    @property
    def is_search(self) -> bool:
        """Searches (keyword or category) are restricted to a wr_num window."""
        return self.has_keyword or bool(self.sca)


@dataclass
class SearchPredicate:
    """A WHERE fragment and the named parameters it binds.

    Attributes:
        where: SQL boolean expression (never empty)
        params: Named parameter values referenced by where
        keywords: Search terms to report to the popularity tracker
    """
    where: str
    params: Dict[str, Any] = field(default_factory=dict)
    keywords: List[str] = field(default_factory=list)

    def merged(self, sql: str, params: Dict[str, Any]) -> "SearchPredicate":
        """Return a new predicate ANDed with another fragment."""
        if not sql:
            return self
        combined = dict(self.params)
        combined.update(params)
        return SearchPredicate(f"{self.where} AND {sql}", combined, list(self.keywords))
