"""
Password hashing with Argon2id.

Argon2id is the recommended password hashing algorithm because:
- Memory-hard (resists GPU/ASIC attacks)
- Side-channel resistant (id variant)
- Winner of the Password Hashing Competition

Cost parameters default to ~250ms / 64MB per hash and can be lowered
through the environment (the test suite does this).
"""

import os

from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, InvalidHashError

ph = PasswordHasher(
    time_cost=int(os.getenv("ARGON2_TIME_COST", "3")),          # Number of iterations
    memory_cost=int(os.getenv("ARGON2_MEMORY_COST", "65536")),  # KiB of memory
    parallelism=int(os.getenv("ARGON2_PARALLELISM", "4")),      # Number of parallel threads
    hash_len=32,        # Length of the hash in bytes
    salt_len=16,        # Length of the random salt
)


def hash_password(password: str) -> str:
    """
    Hash a password using Argon2id.

    Args:
        password: The plaintext password to hash

    Returns:
        The hashed password string (includes algorithm, params, salt, and hash)
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify a password against its hash.

    Returns:
        True if password matches, False otherwise (including malformed hashes)
    """
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def needs_rehash(password_hash: str) -> bool:
    """
    Check if a password hash was produced with outdated parameters.

    After a successful login, check this and rehash if needed.
    """
    try:
        return ph.check_needs_rehash(password_hash)
    except InvalidHashError:
        return True
