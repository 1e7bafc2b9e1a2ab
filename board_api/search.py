"""Search predicate, sort order and search-partition builders.

Pure functions shared by the write service for list, count and neighbor
queries. Nothing here touches the database: the builders return SQL fragments
plus the named parameters they bind, and the caller executes them.

Key Functions:
    build_search_predicate: keyword/category/field search -> SearchPredicate
    resolve_sort_order: requested sort -> safe ORDER BY expression
    SearchWindow: wr_num band [spt, spt + search_part] for windowed searches
    resolve_page: page/per_page -> (page, per_page, offset)
"""

import math
import re
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from board_api.models.board_models import (
    BOARD_SORT_FIELDS,
    DEFAULT_SORT,
    MAX_PAGE_ROWS,
    WRITE_TABLE_COLUMNS,
    Board,
    SearchParams,
    SearchPredicate,
)

DEFAULT_SEARCH_FIELD = 'wr_subject'

FIELD_NAME_PATTERN = re.compile(r'^[\w,|]+$')
SORT_FIELD_PATTERN = re.compile(r'^(wr_datetime|wr_hit|wr_good|wr_nogood)$', re.IGNORECASE)
BOARD_SORT_PATTERN = re.compile(r'^[\w ,]+$')
HAS_LETTER_PATTERN = re.compile(r'[a-zA-Z]')

EXACT_MATCH_FIELDS = ('mb_id', 'wr_name')
COUNTER_FIELDS = ('wr_hit', 'wr_good', 'wr_nogood')
PRIVATE_FIELDS = ('wr_ip', 'wr_password')

# Always false; keeps the surrounding OR/AND structure valid.
NEVER_MATCH = "1=0"


def _parse_field_spec(field_spec: str) -> Tuple[List[str], str]:
    """Split "wr_subject||wr_content,0" into (['wr_subject', 'wr_content'], '0')."""
    parts = field_spec.split(",")
    fields = [name.strip() for name in parts[0].split("||")]
    marker = parts[1].strip() if len(parts) > 1 else ""
    return fields, marker


def _safe_field(name: str) -> str:
    """Whitelist a field name, falling back to the default search field."""
    if not FIELD_NAME_PATTERN.match(name):
        return DEFAULT_SEARCH_FIELD
    name = name.lower()
    if name not in WRITE_TABLE_COLUMNS:
        return DEFAULT_SEARCH_FIELD
    return name


def _to_int(term: str) -> Optional[int]:
    try:
        return int(term)
    except ValueError:
        return None


def _field_clause(field: str, term: str, param_key: str) -> Tuple[str, Optional[Any]]:
    """Return (clause, bound value) for one field/term pair. Value None binds nothing."""
    if field in EXACT_MATCH_FIELDS:
        return f"{field} = :{param_key}", term

    if field in COUNTER_FIELDS:
        number = _to_int(term)
        if number is None:
            return NEVER_MATCH, None
        return f"{field} >= :{param_key}", number

    if field == 'wr_num':
        # Thread numbers are stored negated; clients search by the positive number.
        number = _to_int(term)
        if number is None:
            return NEVER_MATCH, None
        return f"{field} = :{param_key}", -1 * number

    if field in PRIVATE_FIELDS:
        return NEVER_MATCH, None

    if HAS_LETTER_PATTERN.search(term):
        return f"INSTR(LOWER({field}), LOWER(:{param_key})) > 0", term
    return f"INSTR({field}, :{param_key}) > 0", term


def build_search_predicate(search: SearchParams) -> SearchPredicate:
    """Translate search parameters into a parameterized WHERE expression.

    Rules:
        - sca adds "ca_name = :ca_name".
        - Without a keyword (empty and not "0") only non-comment rows match.
        - Otherwise every space separated term produces one OR-group over the
          requested fields; groups are joined with sop (AND unless "or").
        - The ",0" field marker searches comments, anything else searches posts.
          The comment restriction is ANDed with the keyword groups.

    Args:
        search: Request search parameters

    Returns:
        SearchPredicate with the WHERE fragment, its named parameters, and the
        terms to report to the popular-keyword tracker (none when the search
        targets mb_id).

    Example:
        >>> p = build_search_predicate(SearchParams(stx="foo", sfl="wr_subject"))
        >>> p.where
        '((INSTR(LOWER(wr_subject), LOWER(:wr_subject_0)) > 0)) AND wr_is_comment = 0'
    """
    params: Dict[str, Any] = {}
    query_parts = []

    if search.sca:
        query_parts.append("ca_name = :ca_name")
        params['ca_name'] = search.sca

    terms = [term for term in search.stx.split(" ") if term] if search.has_keyword else []
    if not terms:
        query_parts.append("wr_is_comment = 0")
        return SearchPredicate(" AND ".join(query_parts), params, [])

    fields, marker = _parse_field_spec(search.sfl)
    operator = "OR" if search.sop.strip().lower() == "or" else "AND"

    keywords = [] if 'mb_id' in fields else list(terms)

    search_clauses = []
    for i, term in enumerate(terms):
        field_clauses = []
        for raw_field in fields:
            field = _safe_field(raw_field)
            param_key = f"{field}_{i}"
            clause, value = _field_clause(field, term, param_key)
            field_clauses.append(clause)
            if value is not None:
                params[param_key] = value
        search_clauses.append("(" + " OR ".join(field_clauses) + ")")

    query_parts.append("(" + f" {operator} ".join(search_clauses) + ")")

    if marker == '0':
        query_parts.append("wr_is_comment = 1")
    else:
        query_parts.append("wr_is_comment = 0")

    return SearchPredicate(" AND ".join(query_parts), params, keywords)


def _board_default_sort(board: Board) -> str:
    sort_field = (board.sort_field or '').strip()
    if sort_field and BOARD_SORT_PATTERN.match(sort_field):
        return sort_field
    return ''


def resolve_sort_order(search: SearchParams, board: Board) -> str:
    """Resolve the ORDER BY expression for a list query.

    Resolution order:
        1. sst without sod: must be a BOARD_SORT_FIELDS alias (mapped to its expression),
           or one of wr_datetime/wr_hit/wr_good/wr_nogood.
        2. sst with sod: must be one of wr_datetime/wr_hit/wr_good/wr_nogood.
        3. The board's default sort field.
        4. Natural thread order "wr_num, wr_reply".

    sod is only honored together with an accepted explicit sst.

    Returns:
        A non-empty ORDER BY expression built only from whitelisted text.
    """
    sst = (search.sst or '').strip()
    sod = (search.sod or '').strip().lower()
    if sod not in ('asc', 'desc'):
        sod = ''

    resolved = ''
    if sst:
        if not sod and sst in BOARD_SORT_FIELDS:
            resolved = BOARD_SORT_FIELDS[sst]
        elif SORT_FIELD_PATTERN.match(sst):
            resolved = sst.lower()

    if resolved:
        return f"{resolved} {sod}".strip()

    return _board_default_sort(board) or DEFAULT_SORT


def resolve_page(page: int, per_page: Optional[int], board: Board) -> Tuple[int, int, int]:
    """Clamp pagination input and compute the row offset.

    Returns:
        Tuple of (page, per_page, offset)
    """
    page = max(int(page or 1), 1)
    if not per_page:
        per_page = board.page_rows
    per_page = min(max(int(per_page), 1), MAX_PAGE_ROWS)
    return page, per_page, (page - 1) * per_page


def total_pages(total_count: int, per_page: int) -> int:
    return int(math.ceil(total_count / per_page)) if per_page else 0


@dataclass
class SearchWindow:
    """Sliding wr_num partition that bounds windowed searches.

    Thread numbers are negative and grow toward zero, so a search walks the
    table in bands [spt, spt + search_part] from the minimum wr_num upward.

    Attributes:
        is_search: Window is disabled (no predicate, sentinel pointers) when False
        spt: Start of the current band
        search_part: Band width
        min_spt: Smallest wr_num in the table (lower clamp for the previous band)
    """
    is_search: bool
    spt: int
    search_part: int
    min_spt: Optional[int] = None

    SENTINEL = 0

    @classmethod
    def for_search(cls, search: SearchParams, board: Board, min_spt: Optional[int]) -> "SearchWindow":
        """Build the window for a request; spt defaults to the table minimum."""
        spt = search.spt if search.spt is not None else (min_spt or 0)
        return cls(
            is_search=search.is_search,
            spt=int(spt),
            search_part=int(board.search_part),
            min_spt=min_spt,
        )

    def predicate(self) -> Tuple[str, Dict[str, Any]]:
        """Return the wr_num BETWEEN fragment and its parameters ('' when disabled)."""
        if not self.is_search:
            return "", {}
        return (
            "(wr_num BETWEEN :min_wr_num AND :max_wr_num)",
            {'min_wr_num': self.spt, 'max_wr_num': self.spt + self.search_part},
        )

    def previous_partition(self) -> int:
        """Start of the previous band, or 0 when it would drop below min_spt."""
        if not self.is_search:
            return self.SENTINEL
        prev_spt = self.spt - self.search_part
        if self.min_spt is not None and prev_spt < self.min_spt:
            return self.SENTINEL
        return prev_spt

    def next_partition(self) -> int:
        """Start of the next band, or 0 once it would cross zero."""
        if not self.is_search:
            return self.SENTINEL
        next_spt = self.spt + self.search_part
        if next_spt > 0:
            return self.SENTINEL
        return next_spt
