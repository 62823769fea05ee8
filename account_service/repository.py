"""Database repository for account data."""

from __future__ import annotations

import logging
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import Any, Iterator, Tuple

import psycopg
from psycopg import errors
from psycopg.rows import tuple_row
from psycopg_pool import ConnectionPool

from .domain.account import Account, AccountStatus, Role
from .domain.contracts import AccountChanges
from .domain.errors import DuplicateEmail, DuplicateSlug, InternalFailure

logger = logging.getLogger(__name__)

_COLUMNS = (
    "account_id, slug, email, password_hash, created_at, updated_at, "
    "role, status, first_name, last_name"
)

# Mirrors the constraint names declared in migrations/0001_accounts.sql.
_UNIQUE_CONSTRAINTS = {
    "accounts_email_key": DuplicateEmail,
    "accounts_slug_key": DuplicateSlug,
}


def _escape_like(value: str) -> str:
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class AccountRepository:
    """Postgres-backed account persistence.

    Uniqueness of ``email`` and ``slug`` is enforced by the table's unique
    constraints; violations surface as :class:`DuplicateEmail` or
    :class:`DuplicateSlug`.
    """

    def __init__(self, pool: ConnectionPool) -> None:
        """Store the connection pool used for all database interactions."""
        self._pool = pool

    @contextmanager
    def _cursor(self) -> Iterator[psycopg.Cursor]:
        """Yield a cursor inside a committed transaction, translating driver errors."""
        try:
            with self._pool.connection() as conn:
                with conn.cursor(row_factory=tuple_row) as cur:
                    yield cur
                conn.commit()
        except errors.UniqueViolation as exc:
            constraint = exc.diag.constraint_name or ""
            error_cls = _UNIQUE_CONSTRAINTS.get(constraint)
            if error_cls is None:
                logger.error("unexpected unique violation on %s", constraint, exc_info=True)
                raise InternalFailure() from exc
            raise error_cls() from exc
        except psycopg.Error as exc:
            logger.error("account store failure: %s", exc, exc_info=True)
            raise InternalFailure() from exc

    def _map_record(self, row: tuple) -> Account:
        """Convert a raw database tuple into the domain ``Account`` dataclass."""
        return Account(
            account_id=str(row[0]),
            slug=row[1],
            email=row[2],
            password_hash=row[3],
            created_at=row[4],
            updated_at=row[5],
            role=Role(row[6]),
            status=AccountStatus(row[7]),
            first_name=row[8],
            last_name=row[9],
        )

    def _fetch_one(self, where_sql: str, params: Tuple[Any, ...]) -> Account | None:
        with self._cursor() as cur:
            cur.execute(f"SELECT {_COLUMNS} FROM accounts WHERE {where_sql}", params)
            row = cur.fetchone()
        return self._map_record(row) if row else None

    def get_by_id(self, account_id: str) -> Account | None:
        return self._fetch_one("account_id = %s", (account_id,))

    def get_by_email(self, email: str) -> Account | None:
        return self._fetch_one("email = %s", (email,))

    def get_by_slug(self, slug: str) -> Account | None:
        return self._fetch_one("slug = %s", (slug,))

    def list_slugs_with_prefix(self, base: str) -> set[str]:
        """Return ``base`` and every ``base-<suffix>`` slug currently stored."""
        with self._cursor() as cur:
            cur.execute(
                "SELECT slug FROM accounts WHERE slug = %s OR slug LIKE %s",
                (base, f"{_escape_like(base)}-%"),
            )
            return {row[0] for row in cur.fetchall()}

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
        """Insert a new account; the store rejects duplicate emails and slugs."""
        account_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc)
        with self._cursor() as cur:
            cur.execute(
                f"""
                INSERT INTO accounts (account_id, slug, email, password_hash, created_at, updated_at,
                                      role, status, first_name, last_name)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s, %s)
                RETURNING {_COLUMNS}
                """,
                (
                    account_id,
                    slug,
                    email,
                    password_hash,
                    now,
                    now,
                    role.value,
                    status.value,
                    first_name,
                    last_name,
                ),
            )
            row = cur.fetchone()
        return self._map_record(row)

    def update_account(self, account_id: str, changes: AccountChanges) -> Account | None:
        """Apply ``changes`` to one row and return the updated account."""
        values = {
            column: value.value if isinstance(value, (Role, AccountStatus)) else value
            for column, value in changes.as_dict().items()
        }
        if not values:
            return self.get_by_id(account_id)
        values["updated_at"] = datetime.now(timezone.utc)
        # column names come from AccountChanges fields, never from user input
        assignments = ", ".join(f"{column} = %s" for column in values)
        with self._cursor() as cur:
            cur.execute(
                f"UPDATE accounts SET {assignments} WHERE account_id = %s RETURNING {_COLUMNS}",
                (*values.values(), account_id),
            )
            row = cur.fetchone()
        return self._map_record(row) if row else None

    def delete_account(self, account_id: str) -> bool:
        with self._cursor() as cur:
            cur.execute("DELETE FROM accounts WHERE account_id = %s", (account_id,))
            return cur.rowcount > 0

    def list_accounts(
        self,
        *,
        search: str | None = None,
        offset: int = 0,
        limit: int = 20,
    ) -> tuple[list[Account], int]:
        """Return a page of accounts, newest first, plus the total matching count."""
        where_sql = "TRUE"
        params: list[Any] = []
        if search:
            pattern = f"%{_escape_like(search)}%"
            where_sql = (
                "(email ILIKE %s OR first_name ILIKE %s OR last_name ILIKE %s OR slug ILIKE %s)"
            )
            params.extend([pattern] * 4)

        with self._cursor() as cur:
            cur.execute(f"SELECT COUNT(*) FROM accounts WHERE {where_sql}", params)
            total = cur.fetchone()[0]
            cur.execute(
                f"""
                SELECT {_COLUMNS}
                FROM accounts
                WHERE {where_sql}
                ORDER BY created_at DESC, account_id DESC
                LIMIT %s OFFSET %s
                """,
                (*params, limit, offset),
            )
            accounts = [self._map_record(row) for row in cur.fetchall()]
        return accounts, total
