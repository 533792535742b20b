"""
magazine.services.errors — Domain Failures
===========================================

Services raise these instead of ``HTTPException`` so they stay usable
outside a request.  Each carries the HTTP status the API layer maps it
to; :mod:`magazine.api.main` installs the handler that renders
``{"detail": message}``.
"""

from __future__ import annotations


class ServiceError(Exception):
    """Base class for expected, user-facing failures."""

    status_code = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidRequest(ServiceError):
    status_code = 400


class InsufficientZions(ServiceError):
    """Raised when a debit would drive a Zion balance negative."""
    status_code = 400

    def __init__(self, message: str = "Insufficient Zions") -> None:
        super().__init__(message)


class Conflict(ServiceError):
    # The client contract reports duplicates as plain 400s
    status_code = 400


class Forbidden(ServiceError):
    status_code = 403


class NotFound(ServiceError):
    status_code = 404
