"""Request and response models for the HTTP API.

No response model declares a password field, so a password hash can never
be serialised back to a client.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from ..domain.account import Account, AccountStatus, Role


class AccountResponse(BaseModel):
    """Serialised representation of an `Account` aggregate."""

    id: str
    slug: str
    email: str
    first_name: str | None = None
    last_name: str | None = None
    role: Role
    status: AccountStatus
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_domain(cls, account: Account) -> "AccountResponse":
        """Build a response model from the domain aggregate."""
        return cls(
            id=account.account_id,
            slug=account.slug,
            email=account.email,
            first_name=account.first_name,
            last_name=account.last_name,
            role=account.role,
            status=account.status,
            created_at=account.created_at,
            updated_at=account.updated_at,
        )


class RegisterRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1)
    first_name: str | None = None
    last_name: str | None = None


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1)
    password: str = Field(..., min_length=1)


class AuthResponse(BaseModel):
    """Returned by registration and login: the bearer token plus the account."""

    message: str
    token: str
    token_type: str = "bearer"
    expires_in: int
    user: AccountResponse


class UserEnvelope(BaseModel):
    user: AccountResponse


class UserUpdatedResponse(BaseModel):
    message: str
    user: AccountResponse


class MessageResponse(BaseModel):
    message: str


class ProfileUpdateRequest(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    email: EmailStr | None = None


class AdminUpdateRequest(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    email: EmailStr | None = None
    role: Role | None = None
    status: AccountStatus | None = None
    slug: str | None = None


class ResetPasswordRequest(BaseModel):
    new_password: str = Field(..., min_length=1)


class Pagination(BaseModel):
    page: int
    limit: int
    total: int
    total_pages: int


class UserListResponse(BaseModel):
    """Envelope for a page of accounts."""

    users: list[AccountResponse]
    pagination: Pagination
