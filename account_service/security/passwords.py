"""Salted bcrypt password hashing."""

from __future__ import annotations

import logging
from functools import lru_cache

import bcrypt

from ..config import get_settings

logger = logging.getLogger(__name__)

# bcrypt only reads the first 72 bytes of its input
MAX_PASSWORD_BYTES = 72


def _encode(password: str) -> bytes:
    return password.encode("utf-8")[:MAX_PASSWORD_BYTES]


def password_too_long(password: str) -> bool:
    """Return ``True`` when bcrypt would silently ignore part of ``password``."""
    return len(password.encode("utf-8")) > MAX_PASSWORD_BYTES


@lru_cache(maxsize=1)
def _dummy_hash() -> bytes:
    # same cost as real hashes so the fallback compare takes as long as a real one
    rounds = get_settings().bcrypt_rounds
    return bcrypt.hashpw(b"account-service-dummy", bcrypt.gensalt(rounds=rounds))


def hash_password(password: str) -> str:
    """Return a salted bcrypt hash of ``password``.

    Every call draws a fresh salt, so hashing the same password twice yields
    two different strings that both verify.
    """
    rounds = get_settings().bcrypt_rounds
    return bcrypt.hashpw(_encode(password), bcrypt.gensalt(rounds=rounds)).decode("ascii")


def verify_password(password: str, password_hash: str) -> bool:
    """Return ``True`` when ``password`` produced ``password_hash``."""
    try:
        return bcrypt.checkpw(_encode(password), password_hash.encode("ascii"))
    except (ValueError, UnicodeEncodeError):
        logger.warning("stored password hash is malformed")
        bcrypt.checkpw(_encode(password), _dummy_hash())
        return False


def burn_verification(password: str) -> None:
    """Spend one verification's worth of work for a login against an unknown account."""
    bcrypt.checkpw(_encode(password), _dummy_hash())
