"""Exception hierarchy shared by services, stores and the HTTP layer."""

from __future__ import annotations


class ArmarioError(Exception):
    """Base class for every error raised deliberately by Armario code."""


class ValidationFailure(ArmarioError, ValueError):
    """Input rejected before any write was attempted.

    ``field`` names the form field the message belongs next to and ``code`` is a
    stable identifier callers can branch on.
    """

    def __init__(self, field: str, code: str, message: str) -> None:
        super().__init__(message)
        self.field = field
        self.code = code
        self.message = message

    def to_dict(self) -> dict:
        return {"field": self.field, "code": self.code, "message": self.message}


class AuthenticationRequired(ArmarioError):
    """An owner-scoped operation was attempted without a signed-in user."""

    def __init__(self, message: str = "Debes iniciar sesión para continuar.") -> None:
        super().__init__(message)
        self.message = message


class NotFound(ArmarioError, LookupError):
    """Record is missing or belongs to another owner."""


class StoreError(ArmarioError):
    """The item store failed to read or apply a write."""


class AIExchangeError(ArmarioError):
    """The generative model call failed or returned an off-schema payload."""


class IdentityError(ArmarioError):
    """The identity provider rejected a request."""

    def __init__(self, code: str, message: str) -> None:
        super().__init__(message)
        self.code = code
        self.message = message


__all__ = [
    "AIExchangeError",
    "ArmarioError",
    "AuthenticationRequired",
    "IdentityError",
    "NotFound",
    "StoreError",
    "ValidationFailure",
]
