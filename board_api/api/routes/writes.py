"""Post endpoints of a board.

This module provides endpoints under /boards/{bo_table}/writes:
- GET "": List/search posts with notices, paging and search-window pointers
- GET /{wr_id}: One post with its comments, thread root and prev/next links
- POST "": Create a root post (201, throttled as "write")
- POST /{wr_id}/replies: Reply to a post (201, throttled as "write")
- PUT /{wr_id}: Merge the given fields into a post
- DELETE /{wr_id}: Delete a post and its comments (refused while replies exist)
- POST /{wr_id}/{good_type}: Increment the good/nogood counter

Domain failures (unknown board or post, exhausted reply level, replies
present) are raised as BoardError subclasses and rendered by the app-level
handler.
"""

from typing import Annotated, Any, Dict, Optional

from fastapi import APIRouter, Depends, Query, Request

from board_api.api.dependencies import base_url, client_ip, get_write_service, member_from, public_write
from board_api.api.models import (
    NeighborWrite,
    WriteCreate,
    WriteListPage,
    WriteSearchQuery,
    WriteUpdate,
)
from board_api.api.responses import VALIDATION_ERROR, raise_api_error, wrap_response
from board_api.backend.utils.logging_config import get_logger
from board_api.write_service import WriteService

router = APIRouter(prefix="/boards/{bo_table}/writes", tags=["writes"])
logger = get_logger(__name__)


def _check_category(service: WriteService, ca_name: Optional[str]) -> None:
    board = service.board
    if ca_name and board.use_category and ca_name not in board.categories:
        raise_api_error(
            VALIDATION_ERROR,
            f"Invalid category '{ca_name}'. Must be one of: {', '.join(board.categories)}",
        )


def _neighbor(request: Request, service: WriteService, row: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Neighbor row -> NeighborWrite dict with an absolute href keeping the search query."""
    if row is None:
        return None
    href = f"{base_url(request)}/boards/{service.board.bo_table}/writes/{row['wr_id']}"
    if request.url.query:
        href = f"{href}?{request.url.query}"
    return NeighborWrite(
        wr_id=row['wr_id'],
        wr_subject=row['wr_subject'] or '',
        wr_datetime=row['wr_datetime'] or '',
        href=href,
    ).model_dump()


@router.get("")
async def list_writes(
    query: Annotated[WriteSearchQuery, Query()],
    service: WriteService = Depends(get_write_service),
):
    """List posts of a board, optionally filtered by category and keywords.

    Searches are limited to one wr_num window; prev_spt/next_spt give the
    spt value of the neighboring windows (0 when there is none).

    Query Parameters:
        sca, sfl, stx, sop: Category and keyword search
        sst, sod: Sort field and direction
        spt: Search window start
        page, per_page: Pagination

    Returns:
        Response envelope with WriteListPage data and the total row count

    Example:
        GET /boards/free/writes?stx=hello&sfl=wr_subject
    """
    search = query.to_search_params()
    logger.info("list_writes_request", bo_table=service.board.bo_table, page=search.page, is_search=search.is_search)

    result = service.fetch_write_list(search)
    result['notice_writes'] = [public_write(write) for write in result['notice_writes']]
    result['writes'] = [public_write(write) for write in result['writes']]

    page = WriteListPage(**result)
    return wrap_response(page.model_dump(), total=page.total_count)


@router.get("/{wr_id}")
async def get_write(
    request: Request,
    wr_id: int,
    query: Annotated[WriteSearchQuery, Query()],
    service: WriteService = Depends(get_write_service),
):
    """Get one post with its comments and previous/next posts.

    prev/next follow thread order under the same search filter, so paging
    through search results keeps the search.

    Returns:
        Response envelope with {write, comments, thread_root, prev, next}

    Raises:
        WriteNotFoundError: 404 when wr_id is not a post on this board
    """
    logger.info("get_write_request", bo_table=service.board.bo_table, wr_id=wr_id)
    write = service.get_write(wr_id)
    search = query.to_search_params()

    thread_root = write if not write['wr_reply'] else service.fetch_parent_write_by_number(write['wr_num'])

    return wrap_response({
        'write': public_write(write),
        'comments': [public_write(comment) for comment in service.fetch_comments_by_write(write)],
        'thread_root': public_write(thread_root),
        'prev': _neighbor(request, service, service.fetch_prev_write(write, search)),
        'next': _neighbor(request, service, service.fetch_next_write(write, search)),
    })


@router.post("", status_code=201)
async def create_write(
    request: Request,
    body: WriteCreate,
    service: WriteService = Depends(get_write_service),
):
    """Create a root post.

    The post opens a new thread with wr_num = MIN(wr_num) - 1.

    Returns:
        201 with {"wr_id": <new id>}
    """
    _check_category(service, body.ca_name)

    wr_id = service.create_write_data(
        body.model_dump(exclude={'mb_id'}),
        member=member_from(body.mb_id),
        ip=client_ip(request),
    )
    logger.info("create_write_response", bo_table=service.board.bo_table, wr_id=wr_id)
    return wrap_response({'wr_id': wr_id})


@router.post("/{wr_id}/replies", status_code=201)
async def create_reply(
    request: Request,
    wr_id: int,
    body: WriteCreate,
    service: WriteService = Depends(get_write_service),
):
    """Reply to a post.

    The reply joins the parent's thread and takes the next free reply
    character one level below the parent.

    Returns:
        201 with {"wr_id": <new id>}

    Raises:
        WriteNotFoundError: 404 when the parent post does not exist
        ReplyChainExhaustedError: 400 when the level already holds 26 replies
    """
    parent_write = service.get_write(wr_id)
    _check_category(service, body.ca_name)

    fields = body.model_dump(exclude={'mb_id'})
    if not fields.get('ca_name'):
        fields['ca_name'] = parent_write['ca_name']

    new_id = service.create_write_data(
        fields,
        member=member_from(body.mb_id),
        parent_write=parent_write,
        ip=client_ip(request),
    )
    logger.info("create_reply_response", bo_table=service.board.bo_table, parent_id=wr_id, wr_id=new_id)
    return wrap_response({'wr_id': new_id})


@router.put("/{wr_id}")
async def update_write(
    wr_id: int,
    body: WriteUpdate,
    service: WriteService = Depends(get_write_service),
):
    """Merge the fields present in the body into a post.

    Returns:
        Response envelope with {"wr_id": wr_id}
    """
    write = service.get_write(wr_id)
    fields = body.model_dump(exclude_unset=True)
    _check_category(service, fields.get('ca_name'))

    logger.info("update_write_request", bo_table=service.board.bo_table, wr_id=wr_id, fields=sorted(fields))
    service.update_write_data(write, fields)
    return wrap_response({'wr_id': wr_id})


@router.delete("/{wr_id}")
async def delete_write(
    wr_id: int,
    service: WriteService = Depends(get_write_service),
):
    """Delete a post together with its comments.

    Raises:
        WriteHasRepliesError: 409 while replies to the post exist
    """
    write = service.get_write(wr_id)
    logger.info("delete_write_request", bo_table=service.board.bo_table, wr_id=wr_id)
    service.delete_write_data(write)
    return wrap_response({'wr_id': wr_id, 'deleted': True})


@router.post("/{wr_id}/{good_type}")
async def vote_write(
    wr_id: int,
    good_type: str,
    service: WriteService = Depends(get_write_service),
):
    """Increment the good or nogood counter of a post.

    Returns:
        Response envelope with the current {"wr_good", "wr_nogood"} counters

    Raises:
        InvalidGoodTypeError: 422 for a type other than good/nogood
    """
    service.get_write(wr_id)
    counters = service.update_write_good(wr_id, good_type)

    logger.info("vote_write_response", bo_table=service.board.bo_table, wr_id=wr_id, good_type=good_type, **counters)
    return wrap_response(counters)
