"""Account registration, bearer-token authentication and admin user management."""

from .domain.account import Account, AccountStatus, Identity, Role
from .domain.slugs import assign_slug

__all__ = [
    "Account",
    "AccountStatus",
    "Identity",
    "Role",
    "assign_slug",
]
