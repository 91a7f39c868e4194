"""
UniHelp Backend — Application Package Initializer
==================================================

What: Marks the `unihelp` directory as a Python package.
Why:  Enables module imports like `from unihelp.config import get_settings`.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    The backend follows the same layered split for every resource:

    ┌─────────────────────────────────────┐
    │    Routes + WebSocket hub (API)     │  ← HTTP / WS concerns only
    ├─────────────────────────────────────┤
    │  Services (business rules, notify)  │  ← Ownership checks, fan-out
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    The notification broadcaster sits beside the services: it holds no
    database state, only the live WebSocket connections grouped per user.
"""

__version__ = "1.0.0"
