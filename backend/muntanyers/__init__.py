"""
muntanyers Backend: Application Package
=======================================

What: Backend of the muntanyers social network (accounts, posts, likes,
      comments, follow requests, notifications, avatars).
Who:  Imported by uvicorn (`muntanyers.main:app`), Alembic and pytest.

Architecture Note:
    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP + session gating only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← follow state machine, fan-out
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    Every service operation receives the acting account id as an explicit
    argument. Nothing below the routes reads the session.
"""

__version__ = "1.0.0"
