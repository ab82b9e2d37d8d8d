"""Password hashing utilities using bcrypt."""
from __future__ import annotations

import bcrypt
import secrets
import string

from survetic.config import get_settings

# bcrypt only looks at the first 72 bytes of its input
BCRYPT_MAX_PASSWORD_BYTES = 72


class PasswordValidationError(ValueError):
    """Raised when a password fails the password policy."""


def validate_password_strength(password: str) -> None:
    """Validate password length requirements.

    The policy requires:
    - Minimum length of ``password_min_length`` characters (default 6)
    - At most 72 bytes once UTF-8 encoded

    Raises:
        PasswordValidationError: If any requirement is not met.
    """
    min_length = get_settings().password_min_length
    if not password or len(password) < min_length:
        raise PasswordValidationError(f"Password must be at least {min_length} characters long.")

    if len(password.encode("utf-8")) > BCRYPT_MAX_PASSWORD_BYTES:
        raise PasswordValidationError(
            f"Password must be at most {BCRYPT_MAX_PASSWORD_BYTES} bytes long."
        )


def hash_password(password: str, rounds: int | None = None) -> str:
    """Hash a password using bcrypt with the configured cost factor."""
    password_bytes = password.encode('utf-8')
    salt = bcrypt.gensalt(rounds=rounds or get_settings().bcrypt_rounds)
    hashed = bcrypt.hashpw(password_bytes, salt)
    return hashed.decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """Verify a password against a stored hash."""
    try:
        password_bytes = password.encode('utf-8')
        hash_bytes = password_hash.encode('utf-8')
        return bcrypt.checkpw(password_bytes, hash_bytes)
    except (ValueError, TypeError, AttributeError):
        return False


def hash_rounds(password_hash: str) -> int | None:
    """Return the cost factor embedded in a bcrypt hash (``$2b$12$...``)."""
    try:
        return int(password_hash.split("$")[2])
    except (AttributeError, IndexError, ValueError):
        return None


def needs_update(password_hash: str) -> bool:
    """Check if a password hash was produced with a lower cost than configured.

    Raising ``BCRYPT_ROUNDS`` over time makes older hashes eligible for a
    transparent re-hash the next time their owner logs in.
    """
    rounds = hash_rounds(password_hash)
    return rounds is None or rounds < get_settings().bcrypt_rounds


def generate_verification_token() -> str:
    """Generate an unguessable single-use email verification token."""
    return secrets.token_urlsafe(32)


def generate_temporary_password(length: int = 12) -> str:
    """Generate a temporary password for admin-created accounts.

    Args:
        length: Length of the password (default 12)

    Returns:
        A cryptographically secure random password containing only
        uppercase letters, lowercase letters, and digits (no special characters).
    """
    alphabet = string.ascii_letters + string.digits
    return ''.join(secrets.choice(alphabet) for _ in range(length))
