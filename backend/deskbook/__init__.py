"""
DeskBook Backend - Application Package Initializer
====================================================

What: The `deskbook` package: place booking, profiles and friends behind a
      FastAPI app, with personal fields protected by a per-session cipher.
Who:  Imported by uvicorn (`deskbook.main:app`), Alembic and pytest.

Layers:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │         Services (Business Logic)   │  ← Booking rules, validation
    ├─────────────────────────────────────┤
    │  Security (Session, Field Cipher)   │  ← Keys derived per request
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │        Database (Persistence)       │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
