"""
Authentication and Authorization module.

Provides:
- JWT token generation and validation
- Password hashing (Argon2id)
- Role normalization
- Request principal, route policy and the authorization middleware
- Audit logging sink

Only model-free helpers are re-exported here; import the service,
middleware and dependency modules by their full path.
"""

from app.auth.jwt import (
    create_access_token,
    decode_token,
    get_subject,
    get_role,
    validate_token,
    TokenPayload,
)
from app.auth.password import (
    hash_password,
    verify_password,
)
from app.auth.roles import (
    normalize_role_name,
    role_authority,
)

__all__ = [
    # JWT
    "create_access_token",
    "decode_token",
    "get_subject",
    "get_role",
    "validate_token",
    "TokenPayload",
    # Password
    "hash_password",
    "verify_password",
    # Roles
    "normalize_role_name",
    "role_authority",
]
