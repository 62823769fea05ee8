"""Administrator user-management routes."""

from __future__ import annotations

import math

from fastapi import APIRouter, Depends, Query

from ..domain.account import Identity
from ..domain.contracts import AdminAccountUpdate
from ..domain.service import MAX_PAGE_SIZE, AccountService
from ..security.gate import authenticate, require_admin
from .routes import get_service
from .schemas import (
    AccountResponse,
    AdminUpdateRequest,
    MessageResponse,
    Pagination,
    ResetPasswordRequest,
    UserEnvelope,
    UserListResponse,
    UserUpdatedResponse,
)

router = APIRouter(
    prefix="/api/admin/users",
    tags=["admin"],
    dependencies=[Depends(authenticate), Depends(require_admin)],
)


@router.get("", response_model=UserListResponse)
def list_users(
    page: int = Query(default=1, ge=1),
    limit: int = Query(default=20, ge=1, le=MAX_PAGE_SIZE),
    search: str = Query(default=""),
    service: AccountService = Depends(get_service),
) -> UserListResponse:
    """Return a page of accounts matching ``search``, newest first."""
    accounts, total = service.list_accounts(search=search, page=page, limit=limit)
    return UserListResponse(
        users=[AccountResponse.from_domain(account) for account in accounts],
        pagination=Pagination(
            page=page,
            limit=limit,
            total=total,
            total_pages=math.ceil(total / limit),
        ),
    )


@router.get("/{slug}", response_model=UserEnvelope)
def get_user(slug: str, service: AccountService = Depends(get_service)) -> UserEnvelope:
    return UserEnvelope(user=AccountResponse.from_domain(service.get_by_slug(slug)))


@router.put("/{slug}", response_model=UserUpdatedResponse)
def update_user(
    slug: str,
    payload: AdminUpdateRequest,
    identity: Identity = Depends(authenticate),
    service: AccountService = Depends(get_service),
) -> UserUpdatedResponse:
    account = service.admin_update(
        identity,
        slug,
        AdminAccountUpdate(
            first_name=payload.first_name,
            last_name=payload.last_name,
            email=payload.email,
            role=payload.role,
            status=payload.status,
            slug=payload.slug,
        ),
    )
    return UserUpdatedResponse(
        message="User updated successfully",
        user=AccountResponse.from_domain(account),
    )


@router.post("/{slug}/reset-password", response_model=MessageResponse)
def reset_password(
    slug: str,
    payload: ResetPasswordRequest,
    service: AccountService = Depends(get_service),
) -> MessageResponse:
    service.reset_password(slug, payload.new_password)
    return MessageResponse(message="Password reset successfully")


@router.delete("/{slug}", response_model=MessageResponse)
def delete_user(
    slug: str,
    identity: Identity = Depends(authenticate),
    service: AccountService = Depends(get_service),
) -> MessageResponse:
    """Hard-delete an account. Administrators cannot delete themselves."""
    service.delete_account(identity, slug)
    return MessageResponse(message="User deleted successfully")
