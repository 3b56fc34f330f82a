# ==============================================================================
# CORE PACKAGE INITIALIZATION
# ==============================================================================
# Core utilities: Settings, Exceptions, Constants, Logging
# ==============================================================================

"""
Core Module
===========

Contains core utilities and configurations for the application:
- settings: Environment configuration management
- exceptions: Custom exception classes
- constants: Application-wide constants
- logging_config: Root logger setup
"""

from catalog_backend.core.settings import Environment, Settings, get_settings, settings
from catalog_backend.core.exceptions import (
    AppException,
    BadRequestError,
    ConnectivityError,
    ConstraintError,
    DatabaseError,
    DataSourceNotFoundError,
    FilterParseError,
    NotFoundError,
    ServiceUnavailableError,
    ValidationError,
)

__all__ = [
    "settings",
    "get_settings",
    "Settings",
    "Environment",
    "AppException",
    "BadRequestError",
    "ConnectivityError",
    "ConstraintError",
    "DatabaseError",
    "DataSourceNotFoundError",
    "FilterParseError",
    "NotFoundError",
    "ServiceUnavailableError",
    "ValidationError",
]
