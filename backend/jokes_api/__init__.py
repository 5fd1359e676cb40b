"""
Jokes API — Application Package Initializer
============================================

What: Marks the `jokes_api` directory as a Python package.
Who:  Used implicitly by Python's import system and explicitly by Alembic, pytest, and uvicorn.

Architecture Note:
    The service follows a layered layout:

    ┌─────────────────────────────────────┐
    │     Routes + Validation (API)       │  ← HTTP concerns, request shapes
    ├─────────────────────────────────────┤
    │         Services (Handlers)         │  ← Pagination math, response shaping
    ├─────────────────────────────────────┤
    │   Repositories (Storage Collab.)    │  ← create / find_unique / find_many / count
    ├─────────────────────────────────────┤
    │   Models & Database (Persistence)   │  ← SQLAlchemy ORM + async sessions
    └─────────────────────────────────────┘

    Failures raised below the route layer are turned into HTTP responses by
    the error translator (error_translator.py), registered in main.py.
"""

__version__ = "1.0.0"
