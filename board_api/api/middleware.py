"""Request middleware.

ConfigMiddleware
    Loads the site_config rows once per request into request.state.config.

WriteDelayMiddleware
    Write-rate throttle for post and comment creation. Before the handler runs,
    a token that wrote the same action type within write_delay_seconds is
    rejected with 409 TOO_FREQUENT. After the handler, the throttle record is
    stamped only when the response is 201 Created. Super admins
    (config "super_admin" matching request.state.member["mb_id"]) are exempt.

request.state.member is the hook for an authentication layer: a middleware
added after WriteDelayMiddleware (so it runs first) may set it to a dict with
an "mb_id" key. This application installs no such layer, since member and
session lookup are out of its scope, so without one every write is
throttled by token only and the super admin exemption never applies.

ConfigMiddleware must wrap WriteDelayMiddleware (add it after it), because
the throttle reads its delay from request.state.config.
"""

import re
from typing import Iterable, Optional, Pattern, Tuple

from fastapi import Request
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from board_api.api.models import ErrorDetail, ErrorEnvelope
from board_api.api.responses import ERROR_STATUS_CODES
from board_api.backend.db.connection import load_site_config
from board_api.backend.utils.errors import BoardError, MissingTokenError, ThrottledError
from board_api.backend.utils.logging_config import get_logger
from board_api.throttle import ACTION_COMMENT, ACTION_WRITE, ThrottleService, hash_token

logger = get_logger(__name__)

ThrottleRule = Tuple[str, Pattern, str]

DEFAULT_THROTTLE_RULES: Tuple[ThrottleRule, ...] = (
    ("POST", re.compile(r"^/boards/[^/]+/writes(/\d+/replies)?/?$"), ACTION_WRITE),
    ("POST", re.compile(r"^/boards/[^/]+/writes/\d+/comments/?$"), ACTION_COMMENT),
)


def _error_response(exc: BoardError, headers: Optional[dict] = None) -> JSONResponse:
    envelope = ErrorEnvelope(error=ErrorDetail(code=exc.code, message=exc.message))
    return JSONResponse(
        status_code=ERROR_STATUS_CODES.get(exc.code, 400),
        content=envelope.model_dump(),
        headers=headers,
    )


def _config_int(config: dict, key: str, default: int = 0) -> int:
    try:
        return int(config.get(key, default))
    except (TypeError, ValueError):
        return default


class ConfigMiddleware(BaseHTTPMiddleware):
    """Attach the site configuration to every request as request.state.config."""

    async def dispatch(self, request: Request, call_next):
        db = getattr(request.app.state, 'db', None)
        request.state.config = load_site_config(db) if db is not None else {}
        return await call_next(request)


class WriteDelayMiddleware(BaseHTTPMiddleware):
    """Throttle repeated writes per bearer token and action type."""

    def __init__(self, app, rules: Iterable[ThrottleRule] = DEFAULT_THROTTLE_RULES):
        super().__init__(app)
        self.rules = tuple(rules)

    def _action_type(self, request: Request) -> Optional[str]:
        for method, pattern, action_type in self.rules:
            if request.method == method and pattern.match(request.url.path):
                return action_type
        return None

    @staticmethod
    def extract_token(request: Request) -> str:
        """Bearer token from the Authorization header.

        Raises:
            MissingTokenError: If the header is absent or empty
        """
        token = request.headers.get('Authorization', '')
        token = token.replace('Bearer', '', 1).strip()
        if not token:
            raise MissingTokenError()
        return token

    async def dispatch(self, request: Request, call_next):
        action_type = self._action_type(request)
        db = getattr(request.app.state, 'db', None)
        if action_type is None or db is None:
            return await call_next(request)

        config = getattr(request.state, 'config', {}) or {}
        throttle = ThrottleService(db, _config_int(config, 'write_delay_seconds'))
        if not throttle.use_throttle():
            return await call_next(request)

        member = getattr(request.state, 'member', None) or {}
        super_admin = config.get('super_admin')
        if super_admin and member.get('mb_id') == super_admin:
            return await call_next(request)

        try:
            token_hash = hash_token(self.extract_token(request))
        except MissingTokenError as e:
            logger.warning("throttle_token_missing", path=request.url.path)
            return _error_response(e)

        if throttle.is_throttled(token_hash, action_type):
            retry_after = max(throttle.retry_after(token_hash, action_type), 1)
            logger.warning("write_throttled", path=request.url.path, action_type=action_type, retry_after=retry_after)
            return _error_response(
                ThrottledError(action_type, retry_after),
                headers={"Retry-After": str(retry_after)},
            )

        response = await call_next(request)

        if response.status_code == 201:
            throttle.record_success(token_hash, action_type)

        return response
