"""Centralized password hashing configuration.

All modules requiring password hashing import from here so every hash is
produced with the same Argon2id parameters.
"""

from argon2 import PasswordHasher
from argon2.exceptions import InvalidHash, VerificationError

PASSWORD_HASHER = PasswordHasher(
    time_cost=3,
    memory_cost=65536,     # 64 MB in KB
    parallelism=4,
    hash_len=32,
    salt_len=16,
)


def hash_password(password: str) -> str:
    """Hash a password using Argon2id."""
    return PASSWORD_HASHER.hash(password)


def verify_password(hash: str, password: str) -> bool:
    """Return True when the password matches the stored hash."""
    try:
        return PASSWORD_HASHER.verify(hash, password)
    except (VerificationError, InvalidHash):
        return False


def check_needs_rehash(hash: str) -> bool:
    return PASSWORD_HASHER.check_needs_rehash(hash)
