"""Unit tests for the domain error taxonomy

Every failure raised by the write service, the throttle and the board
registry derives from BoardError and carries a machine-readable code that
the API copies into its error envelope.
"""

import pytest

from board_api.backend.utils.errors import (
    BoardError,
    BoardNotFoundError,
    InvalidGoodTypeError,
    MissingTokenError,
    ReplyChainExhaustedError,
    ThrottledError,
    WriteHasRepliesError,
    WriteNotFoundError,
)


class TestErrorCodes:

    @pytest.mark.parametrize("exc, code", [
        (ReplyChainExhaustedError("AZ"), "REPLY_LIMIT_EXCEEDED"),
        (BoardNotFoundError("free"), "NOT_FOUND"),
        (WriteNotFoundError(7), "NOT_FOUND"),
        (WriteHasRepliesError(7, 2), "HAS_REPLIES"),
        (ThrottledError("write", 12), "TOO_FREQUENT"),
        (MissingTokenError(), "BAD_REQUEST"),
        (InvalidGoodTypeError("meh"), "VALIDATION_ERROR"),
    ])
    def test_code_and_base_class(self, exc, code):
        assert isinstance(exc, BoardError)
        assert exc.code == code
        assert str(exc) == exc.message


class TestErrorDetails:

    def test_reply_chain_exhausted(self):
        exc = ReplyChainExhaustedError("AZ")

        assert exc.reply_path == "AZ"
        assert exc.limit == 26
        assert "26" in exc.message

    def test_board_not_found(self):
        assert BoardNotFoundError("missing").message == "Board 'missing' not found"

    def test_write_not_found_kind(self):
        assert WriteNotFoundError(3).message == "Write with ID 3 not found"
        assert WriteNotFoundError(4, kind="Comment").message == "Comment with ID 4 not found"

    def test_has_replies_counts(self):
        exc = WriteHasRepliesError(9, 3)

        assert (exc.wr_id, exc.reply_count) == (9, 3)

    def test_throttled(self):
        exc = ThrottledError("comment", retry_after=17)

        assert exc.message == "You cannot post again within such a short time."
        assert exc.action_type == "comment"
        assert exc.retry_after == 17

    def test_throttled_without_retry_after(self):
        assert ThrottledError("write").retry_after is None

    def test_missing_token(self):
        assert MissingTokenError().message == "Authorization header not found."

    def test_invalid_good_type(self):
        exc = InvalidGoodTypeError("meh")

        assert exc.good_type == "meh"
        assert "good, nogood" in exc.message
