# dwreport/core/exceptions.py


class DomainError(Exception):
    """Base class for errors surfaced to the operator as a readable message."""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ValidationError(DomainError):
    """User-correctable input problem."""


class StoreError(DomainError):
    """The relational store rejected a query or write."""


class IdentityError(DomainError):
    """The identity provider answered with an error."""

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class IdentityConflict(IdentityError):
    """An identity with that email is already registered."""


class AccountConflict(DomainError):
    """The identity exists but could not be linked to a staff profile."""
