"""
FastAPI dependencies for authentication and authorization.

Provides:
- get_current_principal: The principal installed by the authorization middleware
- get_optional_principal: Same, but None for anonymous requests
- require_role: Dependency factory to require specific roles
"""

from typing import Optional

from fastapi import Depends, Request

from app.auth.policy import Principal
from app.core.exceptions import Forbidden, Unauthorized


def get_optional_principal(request: Request) -> Optional[Principal]:
    """Principal for this request, or None if the caller is anonymous."""
    return getattr(request.state, "principal", None)


def get_current_principal(
    principal: Optional[Principal] = Depends(get_optional_principal),
) -> Principal:
    """
    Authenticated principal for this request.

    The middleware never fails a request on a bad token; this is where an
    anonymous caller is finally turned away.

    Raises:
        Unauthorized: no principal was established
    """
    if principal is None:
        raise Unauthorized()
    return principal


def require_role(*allowed_roles: str):
    """
    Dependency to require specific role(s).

    Usage:
        @router.delete("/{id}")
        async def delete_thing(
            principal: Principal = Depends(require_role(ADMIN))
        ):
            ...

    Args:
        allowed_roles: Role names, matched case-insensitively

    Returns:
        Dependency function that validates role
    """
    def role_checker(
        principal: Principal = Depends(get_current_principal),
    ) -> Principal:
        if not principal.has_any_role(allowed_roles):
            raise Forbidden()
        return principal

    return role_checker
