# ==============================================================================
# HELPER UTILITIES
# ==============================================================================
# Common utility functions used across the application
# ==============================================================================

from __future__ import annotations

from datetime import datetime, timezone
from uuid import uuid4


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def generate_request_id(length: int = 8) -> str:
    """Short random identifier for request tracing."""
    return uuid4().hex[:length]


def format_duration(seconds: float) -> str:
    """
    Human-readable duration.

    Example:
        >>> format_duration(3725)
        '1h 2m 5s'
    """
    total = int(round(seconds))
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    if hours:
        return f"{hours}h {minutes}m {secs}s"
    if minutes:
        return f"{minutes}m {secs}s"
    return f"{secs}s"


def utc_now_naive() -> datetime:
    """Current UTC time without tzinfo, as SQLite's CURRENT_TIMESTAMP stores it."""
    return utc_now().replace(tzinfo=None)
