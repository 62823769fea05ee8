"""HTTP route definitions for registration, login and self-service profiles."""

from __future__ import annotations

import logging

import redis
from fastapi import APIRouter, Depends, HTTPException, Request, status

from ..config import get_settings
from ..domain.account import Identity
from ..domain.contracts import ProfileUpdate, RegisterInput
from ..domain.service import AccountService, AuthResult, normalize_email
from ..security.gate import authenticate
from ..security.rate_limiter import SlidingWindowRateLimiter
from ..security.redis_rate_limiter import RedisSlidingWindowRateLimiter
from .schemas import (
    AccountResponse,
    AuthResponse,
    LoginRequest,
    ProfileUpdateRequest,
    RegisterRequest,
    UserEnvelope,
    UserUpdatedResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api")

settings = get_settings()


def _build_rate_limiter() -> SlidingWindowRateLimiter | RedisSlidingWindowRateLimiter:
    """Instantiate the configured rate limiter backend, preferring Redis when available."""
    if settings.rate_limit_backend == "redis" and settings.redis_url:
        try:
            client = redis.from_url(settings.redis_url)
            # ensure connectivity early to fail fast and fall back
            client.ping()
            logger.info("rate limiter configured for redis backend at %s", settings.redis_url)
            return RedisSlidingWindowRateLimiter(
                client,
                max_requests=settings.rate_limit_requests,
                window_seconds=settings.rate_limit_window_seconds,
            )
        except redis.exceptions.RedisError as exc:
            logger.warning("redis rate limiter unavailable, falling back to in-memory: %s", exc)

    logger.info("rate limiter using in-memory backend")
    return SlidingWindowRateLimiter(
        max_requests=settings.rate_limit_requests,
        window_seconds=settings.rate_limit_window_seconds,
    )


rate_limiter = _build_rate_limiter()


def _throttle(key: str) -> None:
    if not rate_limiter.allow(key):
        logger.warning("throttled %s", key)
        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail="rate limited",
            headers={"Retry-After": str(rate_limiter.retry_after(key))},
        )


def _client_host(request: Request) -> str:
    return request.client.host if request.client else "unknown"


def get_service(request: Request) -> AccountService:
    """Resolve the `AccountService` stored on the FastAPI application state."""
    service: AccountService = request.app.state.account_service
    return service


def _auth_response(message: str, result: AuthResult) -> AuthResponse:
    return AuthResponse(
        message=message,
        token=result.token,
        expires_in=result.expires_in,
        user=AccountResponse.from_domain(result.account),
    )


@router.get("/", tags=["meta"])
def api_info() -> dict[str, object]:
    """Describe the API surface."""
    return {
        "name": settings.app_name,
        "version": settings.version,
        "endpoints": [
            {"method": "POST", "path": "/api/auth/register", "description": "Create an account"},
            {"method": "POST", "path": "/api/auth/login", "description": "Exchange credentials for a token"},
            {"method": "GET", "path": "/api/auth/me", "description": "Current account"},
            {"method": "GET", "path": "/api/users/profile", "description": "Own profile"},
            {"method": "PUT", "path": "/api/users/profile", "description": "Update own profile"},
            {"method": "GET", "path": "/api/admin/users", "description": "List accounts (admin)"},
        ],
    }


@router.post(
    "/auth/register",
    response_model=AuthResponse,
    status_code=status.HTTP_201_CREATED,
    tags=["auth"],
)
def register(
    request: Request,
    payload: RegisterRequest,
    service: AccountService = Depends(get_service),
) -> AuthResponse:
    """Register a new account and sign it in."""
    _throttle(f"register:{_client_host(request)}")
    result = service.register(
        RegisterInput(
            email=payload.email,
            password=payload.password,
            first_name=payload.first_name,
            last_name=payload.last_name,
        )
    )
    return _auth_response("User registered successfully", result)


@router.post("/auth/login", response_model=AuthResponse, tags=["auth"])
def login(
    payload: LoginRequest,
    service: AccountService = Depends(get_service),
) -> AuthResponse:
    """Exchange an email and password for a bearer token."""
    rate_key = f"login:{normalize_email(payload.email)}"
    _throttle(rate_key)
    result = service.login(payload.email, payload.password)
    rate_limiter.reset(rate_key)
    return _auth_response("Login successful", result)


@router.get("/auth/me", response_model=UserEnvelope, tags=["auth"])
def me(
    identity: Identity = Depends(authenticate),
    service: AccountService = Depends(get_service),
) -> UserEnvelope:
    """Return the account behind the presented token."""
    return UserEnvelope(user=AccountResponse.from_domain(service.get_account(identity.account_id)))


@router.get("/users/profile", response_model=UserEnvelope, tags=["users"])
def get_profile(
    identity: Identity = Depends(authenticate),
    service: AccountService = Depends(get_service),
) -> UserEnvelope:
    return UserEnvelope(user=AccountResponse.from_domain(service.get_account(identity.account_id)))


@router.put("/users/profile", response_model=UserUpdatedResponse, tags=["users"])
def update_profile(
    payload: ProfileUpdateRequest,
    identity: Identity = Depends(authenticate),
    service: AccountService = Depends(get_service),
) -> UserUpdatedResponse:
    """Update the caller's own name and email."""
    account = service.update_profile(
        identity.account_id,
        ProfileUpdate(
            first_name=payload.first_name,
            last_name=payload.last_name,
            email=payload.email,
        ),
    )
    return UserUpdatedResponse(
        message="Profile updated successfully",
        user=AccountResponse.from_domain(account),
    )
