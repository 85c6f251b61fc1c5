"""
JWT bearer token codec.

- HS256 tokens carrying the username (sub) and canonical role name (role)
- Fixed lifetime from configuration, no refresh and no revocation
- Issuer and audience validation
- Signing key read once at import time
"""

import logging
import os
import secrets
from datetime import datetime, timedelta, timezone
from typing import Optional
from pydantic import BaseModel
from jose import jwt, JWTError, ExpiredSignatureError

from app.auth.roles import normalize_role_name
from app.core.exceptions import InvalidToken

logger = logging.getLogger(__name__)

# Configuration
JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY")
if not JWT_SECRET_KEY:
    # Random per-process key: tokens do not survive a restart
    JWT_SECRET_KEY = secrets.token_urlsafe(32)
    logger.warning("Using auto-generated JWT_SECRET_KEY. Set JWT_SECRET_KEY in production.")

JWT_ALGORITHM = os.getenv("JWT_ALGORITHM", "HS256")
ACCESS_TOKEN_EXPIRE_MINUTES = int(os.getenv("ACCESS_TOKEN_EXPIRE_MINUTES", "600"))
TOKEN_ISSUER = os.getenv("TOKEN_ISSUER", "student-registry-api")
TOKEN_AUDIENCE = os.getenv("TOKEN_AUDIENCE", "student-registry-client")


class TokenPayload(BaseModel):
    """JWT token payload structure."""
    sub: str                          # Username (subject)
    role: Optional[str] = None        # Canonical role name
    iat: datetime                     # Issued at
    exp: datetime                     # Expiration
    iss: str = TOKEN_ISSUER           # Issuer
    aud: str = TOKEN_AUDIENCE         # Audience


def create_access_token(
    subject: str,
    role: str,
    expires_delta: Optional[timedelta] = None,
) -> str:
    """
    Create a signed access token.

    Args:
        subject: The username the token is issued to
        role: Role name; stored in canonical uppercase form
        expires_delta: Override of the configured lifetime

    Returns:
        Encoded JWT string
    """
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))

    payload = {
        "sub": subject,
        "role": normalize_role_name(role),
        "iat": now,
        "exp": expire,
        "iss": TOKEN_ISSUER,
        "aud": TOKEN_AUDIENCE,
    }

    return jwt.encode(payload, JWT_SECRET_KEY, algorithm=JWT_ALGORITHM)


def decode_token(token: str) -> TokenPayload:
    """
    Verify and decode a JWT token.

    Raises:
        InvalidToken: bad signature, wrong issuer/audience, expired or malformed
    """
    try:
        payload = jwt.decode(
            token,
            JWT_SECRET_KEY,
            algorithms=[JWT_ALGORITHM],
            audience=TOKEN_AUDIENCE,
            issuer=TOKEN_ISSUER,
            options={"require_sub": True, "require_iat": True, "require_exp": True},
        )
    except ExpiredSignatureError:
        raise InvalidToken("Token has expired")
    except JWTError as e:
        raise InvalidToken(str(e))

    if not payload.get("sub"):
        raise InvalidToken("Token has no subject")

    try:
        return TokenPayload(
            sub=payload["sub"],
            role=payload.get("role") or None,
            iat=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            exp=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
            iss=payload.get("iss", TOKEN_ISSUER),
            aud=payload.get("aud", TOKEN_AUDIENCE),
        )
    except (KeyError, TypeError, ValueError, OverflowError) as e:
        raise InvalidToken(f"Malformed token claims: {e}")


def get_subject(token: str) -> str:
    """Username carried by the token. Raises InvalidToken."""
    return decode_token(token).sub


def get_role(token: str) -> Optional[str]:
    """Role claim carried by the token, or None when absent. Raises InvalidToken."""
    return decode_token(token).role


def validate_token(token: str, expected_subject: str) -> bool:
    """True if the token verifies, belongs to expected_subject and has not expired."""
    try:
        payload = decode_token(token)
    except InvalidToken:
        return False
    return (
        payload.sub == expected_subject
        and payload.exp > datetime.now(timezone.utc)
    )
