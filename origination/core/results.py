"""Result objects returned by service operations.

Operations never raise across their boundary. Inside an operation, domain
failures are raised as :class:`ServiceError`; the :func:`service_action`
decorator rolls back the session and converts any failure into a failed
:class:`ActionResult` via :func:`handle_action_error`.
"""

from __future__ import annotations

import functools
import inspect
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable, Generic, TypeVar

from pydantic import ValidationError
from sqlalchemy.exc import IntegrityError, NoResultFound, SQLAlchemyError

logger = logging.getLogger(__name__)

T = TypeVar("T")

UNIQUE_VIOLATION_SQLSTATE = "23505"


class ErrorKind(str, Enum):
    UNAUTHORIZED = "unauthorized"
    NOT_FOUND = "not_found"
    VALIDATION_FAILED = "validation_failed"
    INVALID_STATE = "invalid_state"
    UNEXPECTED = "unexpected"


@dataclass(eq=False)
class ServiceError(ValueError):
    kind: ErrorKind
    message: str
    errors: dict[str, str] = field(default_factory=dict)
    code: str | None = None

    def __str__(self) -> str:
        return self.message

    @classmethod
    def unauthorized(cls, message: str = "You are not allowed to perform this action") -> "ServiceError":
        return cls(ErrorKind.UNAUTHORIZED, message)

    @classmethod
    def not_found(cls, message: str = "Record not found") -> "ServiceError":
        return cls(ErrorKind.NOT_FOUND, message)

    @classmethod
    def invalid_state(cls, message: str, **errors: str) -> "ServiceError":
        return cls(ErrorKind.INVALID_STATE, message, dict(errors))

    @classmethod
    def validation(cls, message: str = "Validation failed", **errors: str) -> "ServiceError":
        return cls(ErrorKind.VALIDATION_FAILED, message, dict(errors))


@dataclass
class ActionResult(Generic[T]):
    success: bool
    message: str
    data: T | None = None
    kind: ErrorKind | None = None
    code: str | None = None
    errors: dict[str, str] = field(default_factory=dict)

    @classmethod
    def ok(cls, data: T | None = None, message: str = "Success") -> "ActionResult[T]":
        return cls(success=True, message=message, data=data)

    @classmethod
    def fail(
        cls,
        kind: ErrorKind,
        message: str,
        *,
        code: str | None = None,
        errors: dict[str, str] | None = None,
    ) -> "ActionResult[T]":
        return cls(
            success=False,
            message=message,
            kind=kind,
            code=code or kind.value,
            errors=dict(errors or {}),
        )


def _validation_errors(exc: ValidationError) -> dict[str, str]:
    errors: dict[str, str] = {}
    for error in exc.errors():
        path = ".".join(str(part) for part in error.get("loc") or ()) or "root"
        errors.setdefault(path, error.get("msg") or "Invalid value")
    return errors


def _is_unique_violation(exc: IntegrityError) -> bool:
    orig = getattr(exc, "orig", None)
    sqlstate = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if sqlstate == UNIQUE_VIOLATION_SQLSTATE:
        return True
    return "unique" in str(orig or exc).lower()


def handle_action_error(exc: Exception) -> ActionResult:
    """Translate an exception raised inside an operation into a failed result."""
    if isinstance(exc, ServiceError):
        return ActionResult.fail(exc.kind, exc.message, code=exc.code, errors=exc.errors)
    if isinstance(exc, ValidationError):
        return ActionResult.fail(
            ErrorKind.VALIDATION_FAILED,
            "Validation failed",
            errors=_validation_errors(exc),
        )
    if isinstance(exc, IntegrityError):
        if _is_unique_violation(exc):
            return ActionResult.fail(
                ErrorKind.UNEXPECTED,
                "A unique field already exists",
                code="unique_violation",
                errors={"root": "A record with the same value already exists."},
            )
        return ActionResult.fail(ErrorKind.UNEXPECTED, "Database error", code="database_error")
    if isinstance(exc, NoResultFound):
        return ActionResult.fail(ErrorKind.NOT_FOUND, "Record not found")
    if isinstance(exc, SQLAlchemyError):
        return ActionResult.fail(ErrorKind.UNEXPECTED, "Database error", code="database_error")
    return ActionResult.fail(ErrorKind.UNEXPECTED, "Unexpected server error", code="unexpected_error")


def _session_from_call(signature: inspect.Signature, args: tuple, kwargs: dict) -> Any:
    try:
        bound = signature.bind_partial(*args, **kwargs)
    except TypeError:
        return None
    return bound.arguments.get("db")


def service_action(
    message: str = "Success",
) -> Callable[[Callable[..., Awaitable[Any]]], Callable[..., Awaitable[ActionResult]]]:
    """Run an async operation at the result boundary.

    The wrapped coroutine returns its payload (or a ready ``ActionResult``);
    anything it raises is rolled back and rendered as a failed result.
    """

    def decorator(func: Callable[..., Awaitable[Any]]) -> Callable[..., Awaitable[ActionResult]]:
        signature = inspect.signature(func)

        @functools.wraps(func)
        async def wrapper(*args, **kwargs) -> ActionResult:
            try:
                outcome = await func(*args, **kwargs)
            except Exception as exc:
                db = _session_from_call(signature, args, kwargs)
                if db is not None:
                    await db.rollback()
                if isinstance(exc, (ServiceError, ValidationError)):
                    logger.info("%s failed: %s", func.__qualname__, exc)
                else:
                    logger.exception("%s raised an unexpected error", func.__qualname__)
                return handle_action_error(exc)
            if isinstance(outcome, ActionResult):
                return outcome
            return ActionResult.ok(outcome, message)

        return wrapper

    return decorator
