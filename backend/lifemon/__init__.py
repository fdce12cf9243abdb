"""
LifeMon Backend — Application Package
======================================

What: REST backend for the LifeMon health-tracking web app.
Who:  Imported by uvicorn / the serverless host (`lifemon.main:app`), Alembic and pytest.

Architecture Note:
    The backend follows the usual layered split:

    ┌─────────────────────────────────────┐
    │     Routes (route-group registry)   │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │     Services (profile, avatars)     │  ← orchestration, transactions
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
