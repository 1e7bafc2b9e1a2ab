"""
Test Suite for the Board Write API

Test Organization:
- test_schema.py: Registry tables, constraints and per-board post tables
- test_schema_validation.py: Database initialization/validation script
- test_connection_manager.py: Connection manager, transactions and row helpers
- test_search.py: Search predicate, sort resolver, pagination and search window
- test_write_service.py: Post listing, threading, neighbors and post mutations
- test_comment_service.py: Comment threading and comment mutations
- test_popular_search.py: Keyword popularity tracker
- test_throttle.py: Write-rate throttle service
- test_middleware.py: Config injection and write throttle middleware
- test_fastapi_app.py: FastAPI application setup
- test_response_envelope.py: Standard response and error envelopes
- test_write_routes.py: Board and post HTTP endpoints
- test_comment_routes.py: Comment HTTP endpoints
- backend/utils/: Logging configuration and error taxonomy

Run all tests:
    python -m pytest tests/ -v

Run specific test file:
    python -m pytest tests/test_write_service.py -v
"""
