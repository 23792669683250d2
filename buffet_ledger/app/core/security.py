"""
PIN hashing utilities.

PINs are stored as bcrypt hashes; verification is constant-time.
"""

import bcrypt


def get_password_hash(pin: str) -> str:
    """Hash a PIN with a fresh bcrypt salt."""
    return bcrypt.hashpw(pin.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(pin: str, hashed: str) -> bool:
    """
    Compare a PIN against a stored bcrypt hash.

    Malformed hashes count as a mismatch rather than an error.
    """
    try:
        return bcrypt.checkpw(pin.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False
