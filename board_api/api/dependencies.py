"""Shared route dependencies.

get_write_service() resolves the {bo_table} path parameter to a Board and
returns a WriteService bound to the application connection, so every route
under /boards/{bo_table}/... gets 404 NOT_FOUND for an unknown board before
its own body runs.
"""

import os
from typing import Any, Dict, Optional

from fastapi import Request

from board_api.boards import load_board
from board_api.popular import PopularSearch
from board_api.write_service import WriteService

# Never returned to clients
PRIVATE_COLUMNS = ('wr_password', 'wr_ip')


def client_ip(request: Request) -> str:
    return request.client.host if request.client else ''


def site_config(request: Request) -> Optional[Dict[str, str]]:
    """Site configuration loaded by ConfigMiddleware (None outside the middleware)."""
    return getattr(request.state, 'config', None)


def get_write_service(request: Request, bo_table: str) -> WriteService:
    db = request.app.state.db
    board = load_board(db, bo_table, site_config(request))
    return WriteService(db, board, popular=PopularSearch(db, ip=client_ip(request)))


def member_from(mb_id: str) -> Dict[str, Any]:
    """Author descriptor passed to the write service ({} for anonymous writes)."""
    return {'mb_id': mb_id} if mb_id else {}


def public_write(write: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """Copy of a write row without password and IP columns."""
    if write is None:
        return None
    return {key: value for key, value in write.items() if key not in PRIVATE_COLUMNS}


def base_url(request: Request) -> str:
    """Public base URL for links; BASE_URL env var, else the request's own."""
    return (os.environ.get('BASE_URL') or str(request.base_url)).rstrip('/')
