from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class Role(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


class AccountStatus(str, Enum):
    ACTIVE = "ACTIVE"
    INACTIVE = "INACTIVE"


@dataclass(slots=True)
class Account:
    """Aggregate root for a registered user."""

    account_id: str
    slug: str
    email: str
    password_hash: str
    created_at: datetime
    updated_at: datetime
    role: Role = Role.USER
    status: AccountStatus = AccountStatus.ACTIVE
    first_name: str | None = None
    last_name: str | None = None

    def identity(self) -> "Identity":
        return Identity(account_id=self.account_id, email=self.email, role=self.role)


@dataclass(frozen=True, slots=True)
class Identity:
    """Who a bearer token speaks for; attached to the request by the gate."""

    account_id: str
    email: str
    role: Role
