"""Board registry and keyword popularity endpoints.

This module provides GET endpoints:
- GET /boards: All registered boards
- GET /boards/{bo_table}: One board descriptor
- GET /popular-keywords: Most searched keywords over recent days

Board descriptors resolve inherited settings (search_part, page_rows) from the
site configuration attached to the request by ConfigMiddleware.
"""

from fastapi import APIRouter, Query, Request

from board_api.api.dependencies import site_config
from board_api.api.responses import wrap_response
from board_api.backend.utils.logging_config import get_logger
from board_api.boards import list_boards, load_board
from board_api.popular import PopularSearch

router = APIRouter(prefix="/boards", tags=["boards"])
popular_router = APIRouter(tags=["boards"])
logger = get_logger(__name__)


@router.get("")
async def get_boards(request: Request):
    """List every registered board.

    Returns:
        Response envelope with the board descriptors and total count
    """
    logger.info("list_boards_request")

    boards = [board.to_dict() for board in list_boards(request.app.state.db, site_config(request))]

    logger.info("list_boards_response", count=len(boards))
    return wrap_response(boards, total=len(boards))


@router.get("/{bo_table}")
async def get_board(request: Request, bo_table: str):
    """Get one board descriptor.

    Raises:
        BoardNotFoundError: 404 when bo_table is not registered
    """
    logger.info("get_board_request", bo_table=bo_table)
    board = load_board(request.app.state.db, bo_table, site_config(request))
    return wrap_response(board.to_dict())


@popular_router.get("/popular-keywords")
async def get_popular_keywords(
    request: Request,
    days: int = Query(default=7, ge=1, le=365),
    limit: int = Query(default=10, ge=1, le=100),
):
    """Most searched keywords over the last `days` days.

    Example:
        GET /popular-keywords?days=1 -> {"data": [{"pp_word": "python", "cnt": 3}], ...}
    """
    keywords = PopularSearch(request.app.state.db).fetch_popular(days=days, limit=limit)

    logger.info("popular_keywords_response", days=days, count=len(keywords))
    return wrap_response(keywords, total=len(keywords))
