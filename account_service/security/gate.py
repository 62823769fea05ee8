"""Request guards resolving bearer tokens and enforcing roles.

``authenticate`` must run before any ``require_role`` guard; FastAPI resolves
router-level dependencies in the order they are listed.
"""

from __future__ import annotations

import logging
from typing import Callable, Collection

from fastapi import Header, Request
from prometheus_client import Counter

from ..domain.account import Identity, Role
from ..domain.errors import Forbidden, TokenError, Unauthenticated
from .tokens import decode_access_token

logger = logging.getLogger(__name__)

BEARER_PREFIX = "Bearer "

AUTH_FAILURES = Counter(
    "account_auth_failures_total",
    "Requests rejected by the authentication guard",
    ["reason"],
)


def parse_bearer_token(authorization: str | None) -> str:
    """Return the raw token from an ``Authorization`` header value.

    The scheme prefix is matched case-sensitively and exactly its seven
    characters are removed.
    """
    if not authorization or not authorization.startswith(BEARER_PREFIX):
        raise Unauthenticated("No token provided")
    return authorization[len(BEARER_PREFIX):]


def resolve_identity(authorization: str | None) -> Identity:
    """Parse and verify the header, collapsing every failure into ``Unauthenticated``."""
    try:
        token = parse_bearer_token(authorization)
    except Unauthenticated:
        AUTH_FAILURES.labels(reason="missing").inc()
        logger.info("rejected request without bearer token")
        raise
    try:
        return decode_access_token(token)
    except TokenError as exc:
        AUTH_FAILURES.labels(reason=exc.reason).inc()
        logger.info("rejected bearer token: %s", exc.reason)
        raise Unauthenticated("Invalid or expired token") from exc


def authenticate(
    request: Request,
    authorization: str | None = Header(default=None),
) -> Identity:
    """FastAPI dependency attaching the caller's identity to ``request.state``."""
    identity = resolve_identity(authorization)
    request.state.identity = identity
    return identity


def check_role(identity: Identity | None, allowed: Collection[Role]) -> Identity:
    if identity is None:
        raise Unauthenticated("User not authenticated")
    if identity.role not in allowed:
        required = ", ".join(sorted(role.value for role in allowed))
        raise Forbidden(f"This action requires one of the following roles: {required}")
    return identity


def require_role(*allowed: Role) -> Callable[[Request], Identity]:
    """Build a dependency that admits only identities holding one of ``allowed``."""
    allowed_roles = frozenset(allowed)

    def guard(request: Request) -> Identity:
        return check_role(getattr(request.state, "identity", None), allowed_roles)

    return guard


require_admin = require_role(Role.ADMIN)
