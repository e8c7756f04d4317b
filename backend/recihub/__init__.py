"""
ReciHub Backend — Package Initializer
=====================================

What: Marks the `recihub` directory as a Python package.
Who:  Imported by Alembic, pytest, and whatever process hosts the service layer.

Architecture Note:
    The backend is layered:

    ┌─────────────────────────────────────┐
    │     Services (validation, owners)   │  ← RecipeService
    ├─────────────────────────────────────┤
    │   Repositories (aggregate storage)  │  ← RecipeRepository + reconciliation
    ├─────────────────────────────────────┤
    │       Models & Schemas (Data)       │  ← SQLAlchemy ORM + Pydantic values
    ├─────────────────────────────────────┤
    │   Database / Transactions (Store)   │  ← Async SQLAlchemy sessions
    └─────────────────────────────────────┘

    HTTP routing, authentication and image file storage live outside this
    package and talk to it through RecipeService.
"""

__version__ = "1.0.0"
