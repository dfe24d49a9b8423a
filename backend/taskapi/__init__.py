"""
Task API — Application Package
===============================

Multi-user task tracker. Users register, log in for a bearer token, and
manage a private task list.

Layers:
    ┌─────────────────────────────────────┐
    │   Routes + auth dependency (HTTP)   │  ← status codes, bearer extraction
    ├─────────────────────────────────────┤
    │   Services (business rules)         │  ← accounts, tasks, ownership, tokens
    ├─────────────────────────────────────┤
    │   Models & Schemas (data)           │  ← SQLAlchemy ORM + Pydantic
    ├─────────────────────────────────────┤
    │   Database (Credential Store)       │  ← async SQLAlchemy sessions
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
