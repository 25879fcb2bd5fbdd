"""Domain exceptions raised by the merit services.

Permission evaluators return a decision object instead of raising; these
exceptions cover malformed input, missing records and balance shortfalls.
The API layer maps each class to an HTTP status via ``http_status``.
"""

from __future__ import annotations

from fastapi import status


class MeriterError(Exception):
    """Base class for all domain errors."""

    http_status: int = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(MeriterError):
    """Input rejected before any write took place."""


class NotFoundError(MeriterError):
    """A referenced record does not exist."""

    http_status = status.HTTP_404_NOT_FOUND

    def __init__(self, entity: str, entity_id: str) -> None:
        super().__init__(f"{entity} not found: {entity_id}")
        self.entity = entity
        self.entity_id = entity_id


class PermissionDeniedError(MeriterError):
    """The actor is not allowed to perform the requested action."""

    http_status = status.HTTP_403_FORBIDDEN

    def __init__(self, reason: str, message: str | None = None) -> None:
        super().__init__(message or f"Permission denied: {reason}")
        self.reason = reason


class InsufficientFundsError(MeriterError):
    """Quota or wallet balance does not cover the requested amount."""

    def __init__(self, source: str, available: float, requested: float) -> None:
        super().__init__(
            f"Insufficient {source}. Available: {available:g}, Requested: {requested:g}"
        )
        self.source = source
        self.available = available
        self.requested = requested
