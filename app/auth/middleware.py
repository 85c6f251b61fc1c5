"""
Authorization middleware.

Two steps per request:

1. Authenticate (fail-open). A bearer token, when present and valid,
   installs a Principal on ``request.state.principal``. A missing,
   malformed, expired or role-less token leaves the request anonymous;
   nothing at this step ever rejects a request.
2. Authorize (fail-closed). The route policy decides whether the
   (possibly anonymous) caller may reach the route.
"""

import logging
from typing import Callable, Optional

from fastapi import Request, status
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware

from app.auth.jwt import get_role, get_subject, validate_token
from app.auth.policy import Decision, Principal, RoutePolicy, route_policy
from app.core.exceptions import Forbidden, InvalidToken, Unauthorized

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "


def extract_bearer_token(request: Request) -> Optional[str]:
    """Token from ``Authorization: Bearer <token>``, or None."""
    header = request.headers.get("Authorization")
    if not header:
        return None
    if not header.startswith(BEARER_PREFIX):
        logger.warning("Ignoring Authorization header without Bearer scheme")
        return None
    return header[len(BEARER_PREFIX):].strip() or None


def authenticate_request(request: Request) -> Optional[Principal]:
    """
    Establish the caller's principal from the bearer token.

    Runs at most once per request: an already installed principal is
    returned untouched. Never raises.
    """
    existing = getattr(request.state, "principal", None)
    if existing is not None:
        return existing

    token = extract_bearer_token(request)
    if token is None:
        logger.debug("Anonymous request to %s %s", request.method, request.url.path)
        return None

    try:
        username = get_subject(token)
        role = get_role(token)
        if not role:
            logger.warning("Token for %s carries no role claim, treating as anonymous", username)
            return None

        principal = Principal.from_claims(username, role)
        if not validate_token(token, username):
            logger.warning("Token validation failed for %s", username)
            return None
    except InvalidToken as e:
        logger.warning("Rejected bearer token: %s", e.message)
        return None
    except Exception:
        logger.exception("Unexpected error while authenticating request")
        return None

    request.state.principal = principal
    return principal


class AuthorizationMiddleware(BaseHTTPMiddleware):
    """Authenticate the bearer token, then enforce the route policy."""

    def __init__(self, app, policy: RoutePolicy = route_policy):
        super().__init__(app)
        self.policy = policy

    async def dispatch(self, request: Request, call_next: Callable):
        principal = authenticate_request(request)

        # CORS preflight carries no credentials
        if request.method == "OPTIONS":
            return await call_next(request)

        decision = self.policy.check(request.method, request.url.path, principal)

        if decision == Decision.UNAUTHENTICATED:
            error = Unauthorized()
            return JSONResponse(
                status_code=error.status_code,
                content={"detail": error.message},
                headers=error.headers,
            )

        if decision == Decision.FORBIDDEN:
            logger.info(
                "Denied %s %s for %s (%s)",
                request.method, request.url.path, principal.username, principal.role,
            )
            error = Forbidden()
            return JSONResponse(
                status_code=status.HTTP_403_FORBIDDEN,
                content={"detail": error.message},
            )

        return await call_next(request)
