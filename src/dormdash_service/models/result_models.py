"""Result types returned by services and the vendor transaction envelope.

Services report expected failures through these values instead of raising, so
the HTTP layer can map each kind to a status code and show the message as is.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Category of a failed user action."""

    VALIDATION = "validation"
    UNAUTHENTICATED = "unauthenticated"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    REMOTE = "remote"


@dataclass
class ServiceResult(Generic[T]):
    """Outcome of a single user-initiated action.

    Attributes:
        success: Whether the action completed
        value: Result payload when successful
        error_kind: Category of failure, None on success
        error_message: User-facing message, None on success
    """

    success: bool
    value: T | None = None
    error_kind: ErrorKind | None = None
    error_message: str | None = None

    @classmethod
    def ok(cls, value: T | None = None) -> "ServiceResult[T]":
        return cls(success=True, value=value)

    @classmethod
    def fail(cls, kind: ErrorKind, message: str) -> "ServiceResult[T]":
        return cls(success=False, error_kind=kind, error_message=message)


@dataclass
class TransactionResult:
    """Outcome of an optimistic-concurrency transaction.

    Attributes:
        success: Whether the write committed
        attempts: Number of read-modify-write attempts made
        updates: Fields written by the committed attempt
        not_found: True when the target item does not exist
        rejected: True when a companion write's condition failed
        error_message: Failure description, None on success
    """

    success: bool
    attempts: int
    updates: dict[str, Any] = field(default_factory=dict)
    not_found: bool = False
    rejected: bool = False
    error_message: str | None = None
