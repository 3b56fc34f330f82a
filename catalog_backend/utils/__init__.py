# ==============================================================================
# UTILS PACKAGE INITIALIZATION
# ==============================================================================

"""
Utilities Module
================

Helper functions and utilities:
- Date/time utilities
- ID generators
"""

from catalog_backend.utils.helpers import (
    format_duration,
    generate_request_id,
    utc_now,
    utc_now_naive,
)

__all__ = [
    "format_duration",
    "generate_request_id",
    "utc_now",
    "utc_now_naive",
]
