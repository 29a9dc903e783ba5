"""Password hashing utilities using bcrypt.

Uses the ``bcrypt`` library directly (>=4.0). passlib[bcrypt] is avoided
because passlib is unmaintained and incompatible with bcrypt >=4.

Only one-way digests are ever stored or compared; the raw password never
leaves the request that carried it.
"""

import bcrypt

from config.settings import settings

# bcrypt silently ignores input past 72 bytes; reject instead of truncating.
MAX_PASSWORD_BYTES = 72


def hash_password(plain: str, rounds: int | None = None) -> str:
    """Hash a plain-text password with bcrypt. Returns a utf-8 digest string."""
    encoded = plain.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        raise ValueError(f"Password longer than {MAX_PASSWORD_BYTES} bytes")
    salt = bcrypt.gensalt(rounds=rounds or settings.BCRYPT_ROUNDS)
    return bcrypt.hashpw(encoded, salt).decode("utf-8")


def verify_password(plain: str, digest: str) -> bool:
    """Verify a plain-text password against a bcrypt digest.

    A digest that is not a bcrypt hash (e.g. a legacy plaintext value)
    never matches.
    """
    encoded = plain.encode("utf-8")
    if len(encoded) > MAX_PASSWORD_BYTES:
        return False
    try:
        return bcrypt.checkpw(encoded, digest.encode("utf-8"))
    except ValueError:
        return False
