"""
Error taxonomy and service result envelopes.

Internal layers raise ``AuthError`` subclasses. Public service methods are
wrapped with ``returns_result`` which converts expected failures into a
result model (``success=False``) so callers can render them inline.
Anything that is not an ``AuthError`` (e.g. ``sqlite3.Error``) propagates.
"""
import functools
import logging
from enum import Enum
from typing import Callable, Optional, Type, TypeVar

from pydantic import BaseModel

logger = logging.getLogger(__name__)


class ErrorCode(str, Enum):
    VALIDATION_ERROR = "validation_error"
    INVALID_CREDENTIALS = "invalid_credentials"
    INVALID_INVITE_CODE = "invalid_invite_code"
    FORBIDDEN = "forbidden"
    INVALID_STATE = "invalid_state"
    NOT_FOUND = "not_found"
    DUPLICATE_EMAIL = "duplicate_email"
    UNAUTHENTICATED = "unauthenticated"
    MEMBER_LIMIT_REACHED = "member_limit_reached"


class AuthError(Exception):
    """Base class for expected auth/organization failures."""

    code: ErrorCode = ErrorCode.VALIDATION_ERROR
    default_message: str = "Request could not be completed"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)


class ValidationError(AuthError):
    code = ErrorCode.VALIDATION_ERROR
    default_message = "Invalid input"


class InvalidCredentialsError(AuthError):
    code = ErrorCode.INVALID_CREDENTIALS
    default_message = "Invalid email or password"


class InvalidInviteCodeError(AuthError):
    code = ErrorCode.INVALID_INVITE_CODE
    default_message = "Invalid invite code"


class ForbiddenError(AuthError):
    code = ErrorCode.FORBIDDEN
    default_message = "Insufficient permissions"


class InvalidStateError(AuthError):
    code = ErrorCode.INVALID_STATE
    default_message = "Operation not allowed in the current state"


class NotFoundError(AuthError):
    code = ErrorCode.NOT_FOUND
    default_message = "Not found"


class DuplicateEmailError(AuthError):
    code = ErrorCode.DUPLICATE_EMAIL
    default_message = "User with this email already exists"


class UnauthenticatedError(AuthError):
    code = ErrorCode.UNAUTHENTICATED
    default_message = "Authentication required"


class MemberLimitError(AuthError):
    code = ErrorCode.MEMBER_LIMIT_REACHED
    default_message = "Organization member limit reached"


class OperationResult(BaseModel):
    """Outcome of a service operation that carries no payload."""

    success: bool = True
    error: Optional[str] = None
    error_code: Optional[ErrorCode] = None

    @classmethod
    def failure(cls, exc: AuthError):
        return cls(success=False, error=exc.message, error_code=exc.code)


R = TypeVar("R", bound=OperationResult)


def returns_result(result_cls: Type[R]) -> Callable:
    """
    Decorate a service method so ``AuthError`` becomes ``result_cls.failure``.

    The wrapped method returns its own result on success.
    """
    def decorator(func):
        @functools.wraps(func)
        def wrapper(*args, **kwargs):
            try:
                return func(*args, **kwargs)
            except AuthError as exc:
                logger.info(f"{func.__name__} rejected: {exc.code.value}: {exc.message}")
                return result_cls.failure(exc)
        return wrapper
    return decorator
