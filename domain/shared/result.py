"""Discriminated operation result.

Public identity operations never raise domain errors across the service
boundary; they return an OperationResult instead.
"""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from domain.identity.core.exceptions.identity_errors import IdentityDomainError

T = TypeVar("T")


@dataclass(frozen=True)
class OperationResult(Generic[T]):
    """Success value or domain error, never both.

    Examples:
        >>> OperationResult.success(42).ok
        True
        >>> result = OperationResult.failure(NotFoundError("x"))
        >>> result.error_code
        'not_found'
    """

    ok: bool
    value: Optional[T] = None
    error: Optional[IdentityDomainError] = None

    @staticmethod
    def success(value: Optional[T] = None) -> "OperationResult[T]":
        return OperationResult(ok=True, value=value)

    @staticmethod
    def failure(error: IdentityDomainError) -> "OperationResult[T]":
        return OperationResult(ok=False, error=error)

    @property
    def error_code(self) -> Optional[str]:
        return self.error.code if self.error else None

    @property
    def message(self) -> Optional[str]:
        """User-facing error message."""
        return self.error.message if self.error else None

    def unwrap(self) -> Optional[T]:
        """Value of a successful result, re-raises the error otherwise."""
        if self.error is not None:
            raise self.error
        return self.value
