"""FastAPI application entry point with lifespan, middleware, and structured logging.

This module initializes the FastAPI application with:
- Lifespan context manager for database connection lifecycle
- CORS middleware for the browser client
- ConfigMiddleware (site_config per request) and WriteDelayMiddleware (write throttle)
- Structured logging (JSON) to logs/backend.log
- Exception handlers for consistent error responses
- Basic health check endpoint

The database connection is managed via the lifespan context manager and stored
in app.state.db for access by route handlers throughout the application lifecycle.
On startup the schema is applied (idempotent) and a post table is created for
every registered board.

All API responses follow the standard envelope format defined in board_api.api.models.

Usage:
    uvicorn board_api.api.app:app --reload
    or
    python -m uvicorn board_api.api.app:app --reload
"""

import os
import sqlite3
import traceback
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Dict

from fastapi import FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from board_api.api.middleware import ConfigMiddleware, WriteDelayMiddleware
from board_api.api.models import ErrorEnvelope, ErrorDetail
from board_api.api.responses import (
    VALIDATION_ERROR, DATABASE_ERROR, NOT_FOUND, TOO_FREQUENT,
    ERROR_STATUS_CODES,
)
from board_api.api.routes import boards, comments, writes
from board_api.backend.db.connection import SCHEMA_PATH, DEFAULT_DB_PATH, apply_sql_file, open_connection
from board_api.backend.utils.errors import BoardError
from board_api.backend.utils.logging_config import get_logger, setup_logging
from board_api.boards import ensure_write_tables


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Lifespan context manager for database connection lifecycle.

    Acquires a database connection on startup, applies the schema, creates
    missing board tables and stores the connection in app.state.db for access
    by route handlers. Closes the connection on shutdown.

    Args:
        app: FastAPI application instance

    Yields:
        None (context manager for startup/shutdown)
    """
    logger = get_logger(__name__)

    db_path = os.environ.get('DB_PATH', DEFAULT_DB_PATH)
    Path(db_path).parent.mkdir(parents=True, exist_ok=True)

    try:
        conn = open_connection(db_path)
        apply_sql_file(conn, SCHEMA_PATH)
        ensure_write_tables(conn)

        app.state.db = conn

        logger.info("database_connection_acquired", db_path=db_path)

        yield

    finally:
        if hasattr(app.state, 'db') and app.state.db is not None:
            app.state.db.close()
            app.state.db = None
            logger.info("database_connection_closed")


# Initialize logging before creating the app
setup_logging(log_filename="backend.log")

app = FastAPI(
    title="Board Write API",
    description="Threaded bulletin-board posts and comments with keyword search and write throttling",
    version="1.0.0",
    lifespan=lifespan,
)

cors_origins = os.environ.get(
    'CORS_ORIGINS',
    'http://localhost:5173'
).split(',')

# Added last runs first: ConfigMiddleware must see the request before the throttle
app.add_middleware(WriteDelayMiddleware)
app.add_middleware(ConfigMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

logger = get_logger(__name__)
logger.info("fastapi_app_initialized", cors_origins=cors_origins)

app.include_router(boards.router)
app.include_router(boards.popular_router)
# Before writes: POST .../writes/{wr_id}/comments would otherwise match .../{wr_id}/{good_type}
app.include_router(comments.router)
app.include_router(writes.router)

# Exception Handlers
# These handlers convert exceptions to the standard ErrorEnvelope format


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Handle FastAPI request validation errors (422).

    Converts Pydantic validation errors, including malformed JSON bodies,
    into the standard ErrorEnvelope format.

    Args:
        request: The incoming request
        exc: The validation error exception

    Returns:
        JSONResponse with ErrorEnvelope structure and 422 status code
    """
    logger = get_logger(__name__)
    logger.warning("validation_error", path=request.url.path, errors=str(exc.errors()))

    errors = exc.errors()
    message = errors[0]['msg'] if errors else "invalid request"
    error_envelope = ErrorEnvelope(
        error=ErrorDetail(
            code=VALIDATION_ERROR,
            message=f"Request validation failed: {message}"
        )
    )

    return JSONResponse(
        status_code=422,
        content=error_envelope.model_dump(),
    )


@app.exception_handler(BoardError)
async def board_error_handler(request: Request, exc: BoardError) -> JSONResponse:
    """Handle domain failures raised by the write service and board registry.

    The error's code selects the HTTP status via ERROR_STATUS_CODES.
    """
    logger = get_logger(__name__)
    logger.warning("board_error", path=request.url.path, code=exc.code, message=exc.message)

    status_code = ERROR_STATUS_CODES.get(exc.code, 400)
    headers = None
    if exc.code == TOO_FREQUENT and getattr(exc, 'retry_after', None):
        headers = {"Retry-After": str(exc.retry_after)}

    error_envelope = ErrorEnvelope(
        error=ErrorDetail(code=exc.code, message=exc.message)
    )

    return JSONResponse(
        status_code=status_code,
        content=error_envelope.model_dump(),
        headers=headers,
    )


@app.exception_handler(HTTPException)
async def http_exception_handler(request: Request, exc: HTTPException) -> JSONResponse:
    """Handle HTTPException with error envelope format.

    Routes exceptions raised via raise_api_error() or raw HTTPException
    into the standard ErrorEnvelope structure.
    """
    logger = get_logger(__name__)
    logger.warning("http_exception", path=request.url.path, status=exc.status_code)

    if isinstance(exc.detail, dict) and "code" in exc.detail:
        code = exc.detail["code"]
        message = exc.detail["message"]
    else:
        code_map = {404: NOT_FOUND, 422: VALIDATION_ERROR, 405: "METHOD_NOT_ALLOWED"}
        code = code_map.get(exc.status_code, DATABASE_ERROR)
        message = str(exc.detail) if exc.detail else "An error occurred"

    error_envelope = ErrorEnvelope(
        error=ErrorDetail(code=code, message=message)
    )

    return JSONResponse(
        status_code=exc.status_code,
        content=error_envelope.model_dump(),
        headers=getattr(exc, 'headers', None),
    )


@app.exception_handler(404)
async def not_found_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle 404 Not Found errors for unknown routes."""
    logger = get_logger(__name__)
    logger.warning("not_found", path=request.url.path)

    error_envelope = ErrorEnvelope(
        error=ErrorDetail(
            code=NOT_FOUND,
            message=f"Resource not found: {request.url.path}"
        )
    )

    return JSONResponse(
        status_code=404,
        content=error_envelope.model_dump(),
    )


@app.exception_handler(sqlite3.Error)
async def database_error_handler(request: Request, exc: sqlite3.Error) -> JSONResponse:
    """Handle storage failures (500 DATABASE_ERROR).

    The original error is logged; the client only sees a generic message.
    """
    logger = get_logger(__name__)
    logger.error(
        "database_error",
        path=request.url.path,
        error=str(exc),
        traceback=traceback.format_exc(),
    )

    error_envelope = ErrorEnvelope(
        error=ErrorDetail(
            code=DATABASE_ERROR,
            message="A database error occurred"
        )
    )

    return JSONResponse(
        status_code=500,
        content=error_envelope.model_dump(),
    )


@app.exception_handler(500)
async def internal_server_error_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle 500 Internal Server Error.

    Converts uncaught server errors into the standard ErrorEnvelope format.

    Args:
        request: The incoming request
        exc: The exception

    Returns:
        JSONResponse with ErrorEnvelope structure and 500 status code
    """
    logger = get_logger(__name__)
    logger.error(
        "internal_server_error",
        path=request.url.path,
        error=str(exc),
        traceback=traceback.format_exc(),
    )

    error_envelope = ErrorEnvelope(
        error=ErrorDetail(
            code=DATABASE_ERROR,
            message="An internal server error occurred"
        )
    )

    return JSONResponse(
        status_code=500,
        content=error_envelope.model_dump(),
    )


@app.get("/")
async def root() -> Dict[str, str]:
    """Root endpoint for basic health check.

    Example:
        GET / -> {"status": "ok", "message": "Board Write API"}
    """
    return {
        "status": "ok",
        "message": "Board Write API"
    }


@app.get("/health")
async def health() -> Dict[str, str]:
    """Health check endpoint.

    Example:
        GET /health -> {"status": "healthy"}
    """
    return {"status": "healthy"}
