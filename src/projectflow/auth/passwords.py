"""Password hashing utilities.

Learn: Uses bcrypt for secure password hashing. bcrypt generates a random
salt per hash and embeds it in the output ("$2b$<rounds>$<salt><hash>"), so
two users with the same password get different hashes. Checking goes through
bcrypt.checkpw, which re-hashes with the stored salt and compares in
constant time. Never compare hashes with ==.

Passwords are truncated to 72 bytes (bcrypt's limit).
"""

import bcrypt

BCRYPT_MAX_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str, rounds: int = 12) -> str:
    """Hash a password with bcrypt. Each call uses a fresh salt."""
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(_encode(password), salt).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against its bcrypt hash."""
    try:
        return bcrypt.checkpw(_encode(password), password_hash.encode("utf-8"))
    except (ValueError, TypeError):
        return False
