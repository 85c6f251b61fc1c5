"""
Application exception hierarchy.

Services raise these; the handler registered in app.main renders them as
``{"detail": message}`` with the status code carried by the class.
"""

from typing import Optional

from fastapi import status


class RegistryError(Exception):
    """Base exception for all student registry errors."""

    status_code: int = status.HTTP_400_BAD_REQUEST
    message: str = "Request could not be processed"
    headers: Optional[dict[str, str]] = None

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.message
        super().__init__(self.message)


class InvalidCredentials(RegistryError):
    """Login failed. Deliberately silent about the cause."""

    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid credentials"


class Unauthorized(RegistryError):
    """No authenticated principal, or the principal no longer exists."""

    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Not authenticated"
    headers = {"WWW-Authenticate": "Bearer"}


class Forbidden(RegistryError):
    """Authenticated, but lacking the required role."""

    status_code = status.HTTP_403_FORBIDDEN
    message = "Access denied"


class InvalidToken(RegistryError):
    """
    Bearer token failed signature, structure or expiry checks.

    Swallowed by the authorization middleware; only ever surfaces as a
    downstream Unauthorized.
    """

    status_code = status.HTTP_401_UNAUTHORIZED
    message = "Invalid token"


class NotFound(RegistryError):
    status_code = status.HTTP_404_NOT_FOUND
    message = "Not found"

    def __init__(self, entity: str = "Resource", message: Optional[str] = None):
        self.entity = entity
        super().__init__(message or f"{entity} not found")


class AlreadyExists(RegistryError):
    """Uniqueness or singleton violation."""

    status_code = status.HTTP_409_CONFLICT
    message = "Already exists"


class Conflict(RegistryError):
    """Operation blocked by rows that still reference the target."""

    status_code = status.HTTP_409_CONFLICT
    message = "Operation conflicts with existing records"


class InvalidOldPassword(RegistryError):
    status_code = status.HTTP_400_BAD_REQUEST
    message = "Invalid old password"
