"""
Placemarks Backend: Application Package
=========================================

What: HTTP backend for Placemarks. Proxies Google Places lookups, completes
      the Supabase OAuth callback, and serves database maintenance and index
      monitoring reports.
Who:  Imported by uvicorn (`placemarks.main:app`), Alembic, and pytest.

Layers:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← parse params, pick a response
    ├─────────────────────────────────────┤
    │    Services (External Collaborators)│  ← Places, Supabase, PostgreSQL
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy engine
    └─────────────────────────────────────┘

Each route handler calls exactly one collaborator. Collaborators are built
by `create_app()` and handed to routes through FastAPI dependencies.
"""

__version__ = "1.0.0"
