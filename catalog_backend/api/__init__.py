# ==============================================================================
# API PACKAGE INITIALIZATION
# ==============================================================================

"""
API Module
==========

FastAPI routers and endpoint definitions:
- Dependencies: service container, query parsing, result mapping
- Routers: generic CRUD per entity, role assignments, product feeds,
  filter reference and entity metadata
"""

from catalog_backend.api.router import api_router

__all__ = ["api_router"]
