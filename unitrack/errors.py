"""
Exception types shared by the store, the record helpers and the API.

Each error maps to one HTTP status in unitrack.api:
- NotFoundError   -> 404
- ValidationError -> 400
- ReadOnlyError   -> 403

Disk problems are not wrapped: they stay OSError and surface as 500.
"""

from __future__ import annotations


class UnitrackError(Exception):
    """Base class for all domain errors."""

    status_code = 500


class NotFoundError(UnitrackError):
    status_code = 404


class ValidationError(UnitrackError):
    status_code = 400


class ReadOnlyError(UnitrackError):
    status_code = 403

    def __init__(self, message: str = "Read-only on deployed site") -> None:
        super().__init__(message)
