# ==============================================================================
# OPERATION RESULTS - Tagged Success / Failure
# ==============================================================================
# Repository operations return Ok or Err instead of raising storage errors
# ==============================================================================

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Generic, Optional, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Why a storage operation failed."""
    CONNECTIVITY = "connectivity"
    CONSTRAINT = "constraint"
    NOT_FOUND = "not_found"
    QUERY = "query"


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful operation."""

    value: T

    @property
    def success(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    """
    Failed operation.

    Attributes:
        message: Human-readable status
        error: Underlying error text, kept server-side
        recovered: Whether the connection was restored for later calls
        kind: Failure class
        error_type: Class name of the underlying error
    """

    message: str
    error: str
    kind: ErrorKind
    recovered: bool = False
    error_type: Optional[str] = None

    @property
    def success(self) -> bool:
        return False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "success": False,
            "message": self.message,
            "error": self.error,
            "recovered": self.recovered,
        }


OperationResult = Union[Ok[T], Err]
