"""
Emuji Backend: Application Package Initializer
=================================================

Layered architecture:

    ┌─────────────────────────────────────┐
    │           Routes (API Layer)        │  ← HTTP concerns only
    ├─────────────────────────────────────┤
    │        Services (Data Access)       │  ← Queries, error translation
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy tables + Pydantic
    ├─────────────────────────────────────┤
    │      Database (Connection Pool)     │  ← Fixed-size async pool
    └─────────────────────────────────────┘
"""

__version__ = "1.0.0"
