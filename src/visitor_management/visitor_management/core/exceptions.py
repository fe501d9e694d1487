from __future__ import annotations

from typing import Optional


class DomainError(Exception):
    """Base exception for business rule violations."""

    status_code = 400


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""

    def __init__(self, message: str, *, errors: Optional[list[str]] = None):
        super().__init__(message)
        self.errors = list(errors or [])


class AuthenticationError(DomainError):
    """Raised when credentials or tokens are missing or invalid."""

    status_code = 401

    def __init__(self, message: str, *, code: Optional[str] = None):
        super().__init__(message)
        self.code = code


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""

    status_code = 403


class NotFoundError(DomainError):
    status_code = 404


class ConflictError(DomainError):
    """Raised when a unique value (email, key, ...) is already taken."""

    status_code = 409
