# ==============================================================================
# DATABASE PACKAGE INITIALIZATION
# ==============================================================================
# Named async datasources, their registry and connection resilience
# ==============================================================================

"""
Database Module
===============

- config: ConnectionConfig per named connection, built from settings
- datasource: one SQLAlchemy async engine and session factory
- registry: named connections with lifecycle state
- resilience: bounded reconnects and outage notifications
"""

from catalog_backend.database.config import ConnectionConfig, build_connection_configs
from catalog_backend.database.datasource import DataSource
from catalog_backend.database.registry import ConnectionState, DataSourceRegistry
from catalog_backend.database.resilience import ConnectionResilience, is_connectivity_error

__all__ = [
    "ConnectionConfig",
    "build_connection_configs",
    "DataSource",
    "ConnectionState",
    "DataSourceRegistry",
    "ConnectionResilience",
    "is_connectivity_error",
]
