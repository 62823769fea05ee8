"""Error taxonomy shared by the domain, security and HTTP layers.

Every error carries the HTTP status it maps to and a stable ``code`` so the
request boundary can render it without inspecting messages.
"""

from __future__ import annotations


class AccountServiceError(Exception):
    """Base class for failures recovered at the request boundary."""

    status_code: int = 500
    code: str = "internal_error"
    default_message: str = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AccountServiceError):
    status_code = 400
    code = "validation_error"
    default_message = "Invalid request"


class DuplicateEmail(AccountServiceError):
    status_code = 409
    code = "duplicate_email"
    default_message = "Email already registered"


class DuplicateSlug(AccountServiceError):
    status_code = 409
    code = "duplicate_slug"
    default_message = "Slug already in use"


class SlugAssignmentFailed(DuplicateSlug):
    code = "slug_assignment_failed"
    default_message = "Could not assign a unique slug, please retry"


class Unauthenticated(AccountServiceError):
    status_code = 401
    code = "unauthenticated"
    default_message = "Authentication required"


class TokenError(Unauthenticated):
    """A presented bearer token could not be accepted."""

    reason: str = "invalid"
    default_message = "Invalid or expired token"


class InvalidToken(TokenError):
    reason = "invalid"


class ExpiredToken(TokenError):
    reason = "expired"


class Forbidden(AccountServiceError):
    status_code = 403
    code = "forbidden"
    default_message = "Access denied"


class NotFound(AccountServiceError):
    status_code = 404
    code = "not_found"
    default_message = "User not found"


class AccountInactive(AccountServiceError):
    status_code = 403
    code = "account_inactive"
    default_message = "Your account has been deactivated"


class InternalFailure(AccountServiceError):
    pass
