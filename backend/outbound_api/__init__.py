"""
Outbound Ops API — Application Package Initializer
===================================================

What: Marks the `outbound_api` directory as a Python package.
Why:  Enables module imports like `from outbound_api.config import settings`.
Who:  Used implicitly by Python's import system and explicitly by pytest and uvicorn.

Architecture Note:
    The backend is a thin layer of HTTP glue around a relational database:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │  Middleware (Request Governance)    │  ← request id, logging, rate limits
    ├─────────────────────────────────────┤
    │   Services (Cache, Validation, ...) │  ← pure helpers and process state
    ├─────────────────────────────────────┤
    │     Repositories (Persistence)      │  ← async SQLAlchemy queries
    └─────────────────────────────────────┘

    Every API route passes through `with_request_logging`, which is the single
    boundary that turns unexpected failures into a safe 500 response.
"""

__version__ = "1.0.0"
