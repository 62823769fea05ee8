from __future__ import annotations

import uuid
from dataclasses import replace
from datetime import datetime, timedelta, timezone

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from account_service.api import admin, routes
from account_service.api.errors import install_error_handlers
from account_service.api.middleware import access_log
from account_service.domain.account import Account, AccountStatus, Role
from account_service.domain.contracts import AccountChanges
from account_service.domain.errors import DuplicateEmail, DuplicateSlug
from account_service.domain.service import AccountService
from account_service.security.passwords import hash_password
from account_service.security.tokens import issue_access_token


class FakeRepository:
    """In-memory repository mimicking the Postgres store, unique constraints included."""

    def __init__(self) -> None:
        self.accounts: dict[str, Account] = {}
        self._clock = datetime(2024, 1, 1, tzinfo=timezone.utc)

    def _tick(self) -> datetime:
        self._clock += timedelta(seconds=1)
        return self._clock

    def _check_unique(self, account_id: str | None, email: str | None, slug: str | None) -> None:
        for other in self.accounts.values():
            if other.account_id == account_id:
                continue
            if email is not None and other.email == email:
                raise DuplicateEmail()
            if slug is not None and other.slug == slug:
                raise DuplicateSlug()

    def get_by_id(self, account_id: str):
        return self.accounts.get(account_id)

    def get_by_email(self, email: str):
        return next((a for a in self.accounts.values() if a.email == email), None)

    def get_by_slug(self, slug: str):
        return next((a for a in self.accounts.values() if a.slug == slug), None)

    def list_slugs_with_prefix(self, base: str) -> set[str]:
        return {
            a.slug for a in self.accounts.values() if a.slug == base or a.slug.startswith(f"{base}-")
        }

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
    ) -> Account:
        self._check_unique(None, email, slug)
        now = self._tick()
        account = Account(
            account_id=str(uuid.uuid4()),
            slug=slug,
            email=email,
            password_hash=password_hash,
            created_at=now,
            updated_at=now,
            role=role,
            status=status,
            first_name=first_name,
            last_name=last_name,
        )
        self.accounts[account.account_id] = account
        return account

    def update_account(self, account_id: str, changes: AccountChanges):
        account = self.accounts.get(account_id)
        if account is None:
            return None
        values = changes.as_dict()
        self._check_unique(account_id, values.get("email"), values.get("slug"))
        updated = replace(account, **values, updated_at=self._tick())
        self.accounts[account_id] = updated
        return updated

    def delete_account(self, account_id: str) -> bool:
        return self.accounts.pop(account_id, None) is not None

    def list_accounts(self, *, search: str | None = None, offset: int = 0, limit: int = 20):
        results = list(self.accounts.values())
        if search:
            needle = search.lower()
            results = [
                a
                for a in results
                if any(
                    needle in (value or "").lower()
                    for value in (a.email, a.first_name, a.last_name, a.slug)
                )
            ]
        results.sort(key=lambda a: (a.created_at, a.account_id), reverse=True)
        return results[offset : offset + limit], len(results)


class RacingRepository(FakeRepository):
    """Lets a concurrent registration grab the chosen slug before the next ``steals`` inserts."""

    def __init__(self, steals: int) -> None:
        super().__init__()
        self.steals = steals
        self.insert_attempts = 0

    def create_account(self, *, email: str, slug: str, **kwargs) -> Account:
        self.insert_attempts += 1
        if self.steals > 0:
            self.steals -= 1
            super().create_account(
                email=f"racer-{uuid.uuid4().hex[:8]}@example.com",
                slug=slug,
                password_hash="x",
            )
        return super().create_account(email=email, slug=slug, **kwargs)


@pytest.fixture
def repository() -> FakeRepository:
    return FakeRepository()


@pytest.fixture
def service(repository: FakeRepository) -> AccountService:
    return AccountService(repository)


def make_account(
    repository: FakeRepository,
    email: str,
    *,
    password: str = "secret-pw",
    role: Role = Role.USER,
    status: AccountStatus = AccountStatus.ACTIVE,
    slug: str | None = None,
) -> Account:
    return repository.create_account(
        email=email,
        slug=slug or email.split("@")[0],
        password_hash=hash_password(password),
        role=role,
        status=status,
    )


def bearer(account: Account) -> dict[str, str]:
    token, _ = issue_access_token(account.identity())
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def api_client(service: AccountService):
    """Provide a FastAPI test client with isolated state."""
    app = FastAPI()
    app.middleware("http")(access_log)
    install_error_handlers(app)
    app.include_router(routes.router)
    app.include_router(admin.router)
    app.state.account_service = service

    original_limiter = routes.rate_limiter
    routes.rate_limiter = routes.SlidingWindowRateLimiter(max_requests=50, window_seconds=60)

    with TestClient(app) as client:
        yield client

    routes.rate_limiter = original_limiter
