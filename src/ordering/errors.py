"""Error taxonomy and the success/failure result returned by entry points.

Inside the domain, rules raise Protean exceptions (``ValidationError``,
``InvalidOperationError``, ``ObjectNotFoundError``) or one of the
``OrderingError`` subclasses below. Entry points run their work through
``capture_outcome`` which turns the expected failures into an ``Outcome``
carrying an ``ErrorKind``, so callers can decide whether to retry, ask an
operator for a capture id, or correct their input.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

import structlog
from protean.exceptions import (
    ExpectedVersionError,
    InvalidOperationError,
    ObjectNotFoundError,
    ValidationError,
)

logger = structlog.get_logger(__name__)


class ErrorKind(Enum):
    VALIDATION = "validation"
    CONFLICT = "conflict"
    NOT_FOUND = "not_found"
    GATEWAY_MANUAL_INTERVENTION = "gateway_manual_intervention"
    GATEWAY_TRANSIENT = "gateway_transient"
    GATEWAY_REJECTED = "gateway_rejected"
    PERSISTENCE_FAILURE = "persistence_failure"


class OrderingError(Exception):
    """Base exception for ordering errors that carry their own kind."""

    kind: ErrorKind = ErrorKind.CONFLICT


class ManualInterventionRequired(OrderingError):
    """No automatic refund attempt can succeed without operator input.

    Raised when no capture id could be resolved for the refund, or when the
    provider reports the capture id as unknown.
    """

    kind = ErrorKind.GATEWAY_MANUAL_INTERVENTION

    def __init__(self, refund_id: str, reason: str):
        self.refund_id = refund_id
        self.reason = reason
        super().__init__(f"Manual intervention required for refund {refund_id}: {reason}")


class GatewayTransientError(OrderingError):
    """Timeout or provider-side outage. Re-invoking approve may succeed."""

    kind = ErrorKind.GATEWAY_TRANSIENT

    def __init__(self, refund_id: str, reason: str):
        self.refund_id = refund_id
        self.reason = reason
        super().__init__(f"Gateway unavailable for refund {refund_id}: {reason}")


class GatewayRejectedError(OrderingError):
    """The provider refused the refund."""

    kind = ErrorKind.GATEWAY_REJECTED

    def __init__(self, refund_id: str, reason: str):
        self.refund_id = refund_id
        self.reason = reason
        super().__init__(f"Gateway rejected refund {refund_id}: {reason}")


class PersistenceFailure(OrderingError):
    """A write failed for a reason outside the business rules."""

    kind = ErrorKind.PERSISTENCE_FAILURE

    def __init__(self, operation: str, cause: Exception):
        self.operation = operation
        self.cause = cause
        super().__init__(f"{operation} failed: {cause.__class__.__name__}: {cause}")


@dataclass(frozen=True)
class Outcome:
    """Result of an entry point: a value on success, an error kind otherwise."""

    success: bool
    value: Any = None
    error_kind: ErrorKind | None = None
    message: str | None = None
    details: dict = field(default_factory=dict)

    @classmethod
    def ok(cls, value: Any = None) -> "Outcome":
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, kind: ErrorKind, message: str, details: dict | None = None) -> "Outcome":
        return cls(success=False, error_kind=kind, message=message, details=details or {})

    def unwrap(self) -> Any:
        if not self.success:
            raise ValueError(f"Called unwrap on a failed outcome: {self.error_kind.value}: {self.message}")
        return self.value


def describe(exc: Exception) -> str:
    """Flatten a Protean exception's messages into one readable line."""
    messages = getattr(exc, "messages", None)
    if isinstance(messages, dict):
        parts = []
        for field_name, errors in messages.items():
            if isinstance(errors, (list, tuple)):
                errors = ", ".join(str(e) for e in errors)
            parts.append(f"{field_name}: {errors}")
        return "; ".join(parts)
    if messages:
        return str(messages)
    if exc.args:
        return str(exc.args[0])
    return exc.__class__.__name__


def kind_of(exc: Exception) -> ErrorKind | None:
    """Map an exception to its taxonomy kind, or None when it is unexpected."""
    if isinstance(exc, OrderingError):
        return exc.kind
    if isinstance(exc, ValidationError):
        return ErrorKind.VALIDATION
    if isinstance(exc, ObjectNotFoundError):
        return ErrorKind.NOT_FOUND
    if isinstance(exc, (InvalidOperationError, ExpectedVersionError)):
        return ErrorKind.CONFLICT
    return None


def capture_outcome(operation: str, func: Callable[..., Any], *args, **kwargs) -> Outcome:
    """Run ``func`` and translate expected failures into an ``Outcome``.

    Unexpected exceptions are logged and re-raised as ``PersistenceFailure``;
    they are fatal to the request.
    """
    try:
        return Outcome.ok(func(*args, **kwargs))
    except PersistenceFailure:
        raise
    except Exception as exc:
        kind = kind_of(exc)
        if kind is None:
            logger.exception("Unexpected failure", operation=operation)
            raise PersistenceFailure(operation, exc) from exc

        details = exc.messages if isinstance(exc, ValidationError) and isinstance(exc.messages, dict) else {}
        logger.info(
            "Operation rejected",
            operation=operation,
            error_kind=kind.value,
            reason=describe(exc),
        )
        return Outcome.fail(kind, describe(exc), details)
