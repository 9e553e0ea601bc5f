import os

import bcrypt

from errors import HashingFailed

DEFAULT_ROUNDS = 12


def _rounds_from_env() -> int:
    v = os.getenv("BCRYPT_ROUNDS")
    if not v:
        return DEFAULT_ROUNDS
    try:
        n = int(v)
    except ValueError:
        return DEFAULT_ROUNDS
    # bcrypt only accepts 4..31
    if n < 4 or n > 31:
        return DEFAULT_ROUNDS
    return n


BCRYPT_ROUNDS = _rounds_from_env()


def hash_password(secret: str) -> str:
    """Hash a user or paste password with bcrypt at the configured cost."""
    try:
        return bcrypt.hashpw(secret.encode(), bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode()
    except (ValueError, TypeError) as e:
        # bcrypt>=5 refuses secrets longer than 72 bytes
        raise HashingFailed(str(e)) from e


def verify_password(secret: str, hashed: str) -> bool:
    """Check ``secret`` against a bcrypt hash.

    Never raises: a malformed or missing hash counts as a mismatch so callers
    can treat every failure as "incorrect password".
    """
    if not hashed or secret is None:
        return False
    try:
        return bcrypt.checkpw(secret.encode(), hashed.encode())
    except (ValueError, TypeError):
        return False
