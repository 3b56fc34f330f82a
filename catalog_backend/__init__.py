# ==============================================================================
# APP PACKAGE INITIALIZATION
# ==============================================================================
# Generic catalog CRUD backend with FastAPI and async SQLAlchemy
# ==============================================================================

"""
Catalog Backend
===============

A FastAPI backend exposing filtered, sorted and paginated CRUD over
relational entities.

Features:
---------
- Query-string filter language (structured and legacy grammars)
- Parameterized SQL fragments for every filter operator
- Generic repository service with Ok / Err results
- Named datasources with bounded reconnects and outage notifications

Usage:
------
    uvicorn catalog_backend.main:app --reload
"""

__version__ = "1.0.0"
__all__ = ["__version__"]
