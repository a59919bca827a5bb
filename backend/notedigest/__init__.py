"""
NoteDigest Backend: Application Package
=======================================

What: Owner-scoped note storage with on-demand AI summaries.
Who:  Imported by uvicorn (`notedigest.main:app`), Alembic and pytest.

Layout:

    ┌─────────────────────────────────────┐
    │   Routes + Security (API Layer)     │  ← HTTP, bearer tokens
    ├─────────────────────────────────────┤
    │   Services (Business Logic)         │  ← note CRUD, summarizer, retries
    ├─────────────────────────────────────┤
    │   Models & Schemas (Data)           │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │   Database (Persistence)            │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
