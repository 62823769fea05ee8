"""Account service orchestrating persistence, credential checks and token issuance."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Protocol

from .account import Account, AccountStatus, Identity, Role
from .contracts import AccountChanges, AdminAccountUpdate, ProfileUpdate, RegisterInput
from .errors import (
    AccountInactive,
    DuplicateEmail,
    DuplicateSlug,
    Forbidden,
    NotFound,
    SlugAssignmentFailed,
    Unauthenticated,
    ValidationError,
)
from .slugs import SLUG_PATTERN, assign_slug, slug_base
from ..config import get_settings
from ..security.passwords import (
    MAX_PASSWORD_BYTES,
    burn_verification,
    hash_password,
    password_too_long,
    verify_password,
)
from ..security.tokens import issue_access_token

logger = logging.getLogger(__name__)

MAX_PAGE_SIZE = 100


class AccountStore(Protocol):
    """Persistence contract satisfied by :class:`~account_service.repository.AccountRepository`."""

    def get_by_id(self, account_id: str) -> Account | None: ...

    def get_by_email(self, email: str) -> Account | None: ...

    def get_by_slug(self, slug: str) -> Account | None: ...

    def list_slugs_with_prefix(self, base: str) -> set[str]: ...

    def create_account(
        self,
        *,
        email: str,
        slug: str,
        password_hash: str,
        first_name: str | None = None,
        last_name: str | None = None,
        role: Role = Role.USER,
        status: AccountStatus = AccountStatus.ACTIVE,
    ) -> Account: ...

    def update_account(self, account_id: str, changes: AccountChanges) -> Account | None: ...

    def delete_account(self, account_id: str) -> bool: ...

    def list_accounts(
        self, *, search: str | None = None, offset: int = 0, limit: int = 20
    ) -> tuple[list[Account], int]: ...


@dataclass(slots=True)
class AuthResult:
    """An account together with a freshly issued bearer token."""

    account: Account
    token: str
    expires_in: int


def normalize_email(email: str) -> str:
    return email.strip().lower()


def _check_password_length(password: str) -> None:
    if password_too_long(password):
        raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")


class AccountService:
    """Account workflows backed by an :class:`AccountStore`."""

    def __init__(self, repository: AccountStore, *, slug_max_attempts: int | None = None) -> None:
        self._repository = repository
        self._slug_max_attempts = slug_max_attempts or get_settings().slug_max_attempts

    def _issue(self, account: Account) -> AuthResult:
        token, expires_in = issue_access_token(account.identity())
        return AuthResult(account=account, token=token, expires_in=expires_in)

    def register(self, payload: RegisterInput) -> AuthResult:
        """Create a ``USER`` account with a unique slug and return it with a token.

        The slug pre-check is only a hint: a concurrent registration can claim
        the same candidate before this insert commits, in which case the store
        rejects the insert and the candidate is recomputed. After
        ``slug_max_attempts`` rejections :class:`SlugAssignmentFailed` is raised.
        """
        email = normalize_email(payload.email)
        if not email or not payload.password:
            raise ValidationError("Email and password are required")
        _check_password_length(payload.password)
        if self._repository.get_by_email(email) is not None:
            raise DuplicateEmail()

        password_hash = hash_password(payload.password)
        base = slug_base(email)
        for attempt in range(1, self._slug_max_attempts + 1):
            slug = assign_slug(email, self._repository.list_slugs_with_prefix(base))
            try:
                account = self._repository.create_account(
                    email=email,
                    slug=slug,
                    password_hash=password_hash,
                    first_name=payload.first_name or None,
                    last_name=payload.last_name or None,
                )
            except DuplicateSlug:
                logger.warning(
                    "slug %r taken concurrently (attempt %d/%d)", slug, attempt, self._slug_max_attempts
                )
                continue
            logger.info("registered account %s with slug %r", account.account_id, account.slug)
            return self._issue(account)

        logger.error("gave up assigning a slug for base %r after %d attempts", base, self._slug_max_attempts)
        raise SlugAssignmentFailed()

    def login(self, email: str, password: str) -> AuthResult:
        """Check credentials and return the account with a new token."""
        if not email or not password:
            raise ValidationError("Email and password are required")
        account = self._repository.get_by_email(normalize_email(email))
        if account is None or password_too_long(password):
            burn_verification(password)
            raise Unauthenticated("Invalid email or password")
        if not verify_password(password, account.password_hash):
            raise Unauthenticated("Invalid email or password")
        if account.status is not AccountStatus.ACTIVE:
            raise AccountInactive()
        return self._issue(account)

    def get_account(self, account_id: str) -> Account:
        account = self._repository.get_by_id(account_id)
        if account is None:
            raise NotFound("User does not exist")
        return account

    def update_profile(self, account_id: str, payload: ProfileUpdate) -> Account:
        """Update the caller's own name and email."""
        changes = AccountChanges(first_name=payload.first_name, last_name=payload.last_name)
        if payload.email:
            email = normalize_email(payload.email)
            owner = self._repository.get_by_email(email)
            if owner is not None and owner.account_id != account_id:
                raise DuplicateEmail("This email is already registered to another account")
            changes.email = email
        account = self._repository.update_account(account_id, changes)
        if account is None:
            raise NotFound("User not found")
        return account

    def list_accounts(
        self, *, search: str | None = None, page: int = 1, limit: int = 20
    ) -> tuple[list[Account], int]:
        if page < 1:
            raise ValidationError("page must be at least 1")
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise ValidationError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        return self._repository.list_accounts(
            search=search or None, offset=(page - 1) * limit, limit=limit
        )

    def get_by_slug(self, slug: str) -> Account:
        account = self._repository.get_by_slug(slug)
        if account is None:
            raise NotFound(f"No user found with slug: {slug}")
        return account

    def admin_update(self, actor: Identity, slug: str, payload: AdminAccountUpdate) -> Account:
        """Apply an administrator's changes to the account behind ``slug``.

        An administrator may not change their own role.
        """
        account = self.get_by_slug(slug)
        if (
            account.account_id == actor.account_id
            and payload.role is not None
            and payload.role is not account.role
        ):
            raise Forbidden("You cannot change your own role")

        changes = AccountChanges(
            first_name=payload.first_name,
            last_name=payload.last_name,
            role=payload.role,
            status=payload.status,
        )
        if payload.email:
            email = normalize_email(payload.email)
            if email != account.email:
                if self._repository.get_by_email(email) is not None:
                    raise DuplicateEmail("This email is already registered to another account")
                changes.email = email
        if payload.slug is not None and payload.slug != account.slug:
            if not payload.slug or not SLUG_PATTERN.match(payload.slug):
                raise ValidationError("Slug may only contain lowercase letters, digits and hyphens")
            changes.slug = payload.slug

        updated = self._repository.update_account(account.account_id, changes)
        if updated is None:
            raise NotFound(f"No user found with slug: {slug}")
        logger.info("account %s updated by admin %s", updated.account_id, actor.account_id)
        return updated

    def reset_password(self, slug: str, new_password: str) -> None:
        if not new_password:
            raise ValidationError("New password is required")
        _check_password_length(new_password)
        account = self.get_by_slug(slug)
        updated = self._repository.update_account(
            account.account_id, AccountChanges(password_hash=hash_password(new_password))
        )
        if updated is None:
            raise NotFound(f"No user found with slug: {slug}")
        logger.info("password reset for account %s", account.account_id)

    def delete_account(self, actor: Identity, slug: str) -> None:
        account = self.get_by_slug(slug)
        if account.account_id == actor.account_id:
            raise Forbidden("You cannot delete your own account")
        if not self._repository.delete_account(account.account_id):
            raise NotFound(f"No user found with slug: {slug}")
        logger.info("account %s deleted by admin %s", account.account_id, actor.account_id)
