"""Comment endpoints of a post.

This module provides endpoints under /boards/{bo_table}/writes/{wr_id}/comments:
- GET "": Comments of the post in thread order
- POST "": Add a comment, or a reply to comment_id (201, throttled as "comment")
- PUT /{comment_id}: Merge the given fields into a comment
- DELETE /{comment_id}: Delete a comment (refused while replies exist)
"""

from fastapi import APIRouter, Depends, Request

from board_api.api.dependencies import client_ip, get_write_service, member_from, public_write
from board_api.api.models import CommentCreate, CommentUpdate
from board_api.api.responses import wrap_response
from board_api.backend.utils.logging_config import get_logger
from board_api.write_service import WriteService

router = APIRouter(prefix="/boards/{bo_table}/writes/{wr_id}/comments", tags=["comments"])
logger = get_logger(__name__)


@router.get("")
async def list_comments(
    wr_id: int,
    service: WriteService = Depends(get_write_service),
):
    """List comments ordered by comment group, then comment path."""
    write = service.get_write(wr_id)
    comments = [public_write(comment) for comment in service.fetch_comments_by_write(write)]
    logger.info("list_comments_response", bo_table=service.board.bo_table, wr_id=wr_id, count=len(comments))
    return wrap_response(comments, total=len(comments))


@router.post("", status_code=201)
async def create_comment(
    request: Request,
    wr_id: int,
    body: CommentCreate,
    service: WriteService = Depends(get_write_service),
):
    """Add a comment to a post.

    With comment_id the new comment replies to that comment: it joins the
    parent's comment group and extends its comment path.

    Returns:
        201 with {"wr_id": <post id>, "comment_id": <new comment id>}

    Raises:
        WriteNotFoundError: 404 for an unknown post or comment_id
        ReplyChainExhaustedError: 400 when the comment level already holds 26 replies
    """
    write = service.get_write(wr_id)
    parent_comment = service.get_comment(write, body.comment_id) if body.comment_id else None

    comment_id = service.create_comment_data(
        write,
        body.model_dump(exclude={'mb_id', 'comment_id'}),
        member=member_from(body.mb_id),
        parent_comment=parent_comment,
        ip=client_ip(request),
    )
    logger.info(
        "create_comment_response",
        bo_table=service.board.bo_table,
        wr_id=wr_id,
        comment_id=comment_id,
        reply_to=body.comment_id,
    )
    return wrap_response({'wr_id': wr_id, 'comment_id': comment_id})


@router.put("/{comment_id}")
async def update_comment(
    wr_id: int,
    comment_id: int,
    body: CommentUpdate,
    service: WriteService = Depends(get_write_service),
):
    write = service.get_write(wr_id)
    comment = service.get_comment(write, comment_id)
    logger.info("update_comment_request", bo_table=service.board.bo_table, wr_id=wr_id, comment_id=comment_id)
    service.update_comment_data(comment, body.model_dump(exclude_unset=True))
    return wrap_response({'wr_id': wr_id, 'comment_id': comment_id})


@router.delete("/{comment_id}")
async def delete_comment(
    wr_id: int,
    comment_id: int,
    service: WriteService = Depends(get_write_service),
):
    """Delete a comment.

    Raises:
        WriteHasRepliesError: 409 while replies to the comment exist
    """
    write = service.get_write(wr_id)
    comment = service.get_comment(write, comment_id)
    logger.info("delete_comment_request", bo_table=service.board.bo_table, wr_id=wr_id, comment_id=comment_id)
    service.delete_comment_data(write, comment)
    return wrap_response({'wr_id': wr_id, 'comment_id': comment_id, 'deleted': True})
