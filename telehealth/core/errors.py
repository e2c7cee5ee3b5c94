"""Domain errors raised by the scheduling and booking core.

Every business-rule violation is a ``DomainError`` subclass carrying an HTTP
status and a short machine code; the API layer maps them straight to JSON.
Anything the store throws at us is wrapped into ``InternalError`` so storage
details never reach the caller.
"""
import functools
import logging
from collections.abc import Awaitable, Callable
from typing import ParamSpec, TypeVar

from fastapi import status
from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


class DomainError(Exception):
    status_code: int = status.HTTP_400_BAD_REQUEST
    code: str = "error"

    def __init__(self, detail: str) -> None:
        super().__init__(detail)
        self.detail = detail


class ValidationError(DomainError):
    status_code = status.HTTP_400_BAD_REQUEST
    code = "validation_error"


class ConflictError(DomainError):
    status_code = status.HTTP_409_CONFLICT
    code = "conflict"


class SlotUnavailableError(ConflictError):
    code = "slot_unavailable"

    def __init__(self, detail: str = "Slot not available") -> None:
        super().__init__(detail)


class NotFoundError(DomainError):
    status_code = status.HTTP_404_NOT_FOUND
    code = "not_found"


class ForbiddenError(DomainError):
    status_code = status.HTTP_403_FORBIDDEN
    code = "forbidden"


class NotADoctorError(ForbiddenError):
    code = "not_a_doctor"

    def __init__(self, detail: str = "Doctor profile not found") -> None:
        super().__init__(detail)


class InvalidStateError(DomainError):
    status_code = status.HTTP_409_CONFLICT
    code = "invalid_state"


class InternalError(DomainError):
    status_code = status.HTTP_500_INTERNAL_SERVER_ERROR
    code = "operation_failed"


def persistence_guard(
    message: str,
) -> Callable[[Callable[P, Awaitable[R]]], Callable[P, Awaitable[R]]]:
    """Re-raise store failures from the wrapped coroutine as ``InternalError(message)``."""

    def decorator(fn: Callable[P, Awaitable[R]]) -> Callable[P, Awaitable[R]]:
        @functools.wraps(fn)
        async def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            try:
                return await fn(*args, **kwargs)
            except DomainError:
                raise
            except SQLAlchemyError as e:
                logger.exception("%s: %s", message, e)
                raise InternalError(message) from e

        return wrapper

    return decorator
