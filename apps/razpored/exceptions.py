"""
Error taxonomy for the roster grid.

Conflict and duplicate errors are expected races handled inside the
assignment mutator. The rest reach the views and API as a single failure
message for the user.
"""

from typing import Any, Dict, Optional


class RazporedError(Exception):
    """
    Base class for all roster errors.

    Attributes:
        message: Human-readable message, shown to the user as is.
        details: Extra context (ids, dates) for logs and API responses.
    """

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        self.message = message
        self.details = details or {}
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Dictionary form used in API error bodies."""
        return {
            "message": self.message,
            "details": self.details,
            "error": self.__class__.__name__,
        }


class ValidationError(RazporedError):
    """Required input missing or malformed."""


class ConflictError(RazporedError):
    """Another writer created the schedule entry for the same day and workstation."""


class DuplicateError(RazporedError):
    """The staff member is already assigned to the entry."""


class NotFoundError(RazporedError):
    """No schedule entry (or record) is known for the requested key."""


class StoreUnavailableError(RazporedError):
    """The database failed for reasons other than a constraint violation."""
