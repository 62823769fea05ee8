"""Domain-level request contracts shared by multiple layers."""

from __future__ import annotations

from dataclasses import dataclass, fields

from .account import AccountStatus, Role


@dataclass(slots=True)
class RegisterInput:
    """Validated inputs required to register an account."""

    email: str
    password: str
    first_name: str | None = None
    last_name: str | None = None


@dataclass(slots=True)
class ProfileUpdate:
    """Fields an account holder may change on their own profile."""

    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None


@dataclass(slots=True)
class AdminAccountUpdate:
    """Fields an administrator may change on any account. ``None`` leaves a field untouched."""

    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    role: Role | None = None
    status: AccountStatus | None = None
    slug: str | None = None


@dataclass(slots=True)
class AccountChanges:
    """Column-level changes handed to the repository."""

    first_name: str | None = None
    last_name: str | None = None
    email: str | None = None
    role: Role | None = None
    status: AccountStatus | None = None
    slug: str | None = None
    password_hash: str | None = None

    def as_dict(self) -> dict[str, object]:
        return {
            item.name: getattr(self, item.name)
            for item in fields(self)
            if getattr(self, item.name) is not None
        }
