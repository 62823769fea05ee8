"""Utilities for issuing and validating application JWTs."""

from __future__ import annotations

import time
from typing import Any

import jwt

from ..config import get_settings
from ..domain.account import Identity, Role
from ..domain.errors import ExpiredToken, InvalidToken

_ALGORITHM = "HS256"
_REQUIRED_CLAIMS = ["sub", "email", "role", "iat", "exp"]


def issue_access_token(identity: Identity, *, issued_at: int | None = None) -> tuple[str, int]:
    """Create a signed JWT representing an authenticated account.

    Parameters
    ----------
    identity:
        Account identifier, email and role to embed in the token.
    issued_at:
        Issuance instant as a UNIX timestamp; defaults to now. The same
        identity, secret and ``issued_at`` always produce the same token.

    Returns
    -------
    tuple[str, int]
        A tuple containing the encoded JWT string and its TTL (in seconds).
    """

    settings = get_settings()
    now = int(time.time()) if issued_at is None else issued_at
    expires_in = settings.jwt_ttl_seconds
    payload: dict[str, Any] = {
        "iss": settings.jwt_issuer,
        "sub": identity.account_id,
        "email": identity.email,
        "role": identity.role.value,
        "iat": now,
        "exp": now + expires_in,
    }

    token = jwt.encode(payload, settings.jwt_secret, algorithm=_ALGORITHM)
    return token, expires_in


def decode_access_token(token: str) -> Identity:
    """Verify a JWT and return the identity it carries.

    Parameters
    ----------
    token:
        Encoded JWT issued by this service.

    Returns
    -------
    Identity
        The account id, email and role from the token claims.

    Raises
    ------
    ExpiredToken
        When the signature is valid but ``exp`` has passed.
    InvalidToken
        When the token is malformed, signed with another secret or issuer, or
        lacks a usable identity claim.
    """

    settings = get_settings()
    try:
        claims = jwt.decode(
            token,
            settings.jwt_secret,
            algorithms=[_ALGORITHM],
            issuer=settings.jwt_issuer,
            options={"require": _REQUIRED_CLAIMS},
        )
    except jwt.ExpiredSignatureError as exc:
        raise ExpiredToken() from exc
    except jwt.PyJWTError as exc:
        raise InvalidToken() from exc

    try:
        role = Role(claims["role"])
    except ValueError as exc:
        raise InvalidToken("Token carries an unknown role") from exc
    return Identity(account_id=str(claims["sub"]), email=str(claims["email"]), role=role)
