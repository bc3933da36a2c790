"""
============================================================================
FILE: security.py
LOCATION: eduportal/security.py
============================================================================

PURPOSE:
    bcrypt password hashing for user records.

USAGE:
    from eduportal.security import hash_password, verify_password
============================================================================
"""

import bcrypt

from eduportal import config


# bcrypt only looks at the first 72 bytes
_BCRYPT_MAX_BYTES = 72


def hash_password(password: str) -> str:
    """Hash password with the configured cost factor (BCRYPT_ROUNDS, min 10)."""
    password_bytes = password.encode("utf-8")[:_BCRYPT_MAX_BYTES]
    hashed = bcrypt.hashpw(password_bytes, bcrypt.gensalt(rounds=config.BCRYPT_ROUNDS))
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify password against a stored hash; a missing hash never matches."""
    if not plain_password or not hashed_password:
        return False
    password_bytes = plain_password.encode("utf-8")[:_BCRYPT_MAX_BYTES]
    try:
        return bcrypt.checkpw(password_bytes, hashed_password.encode("utf-8"))
    except ValueError:
        # Stored value is not a bcrypt hash
        return False
