"""
Operation results returned by the engine's public operations.

Domain failures are reported as values, never raised past the service
boundary and never swallowed. Storage failures (RuntimeError) are not domain
outcomes and still propagate.
"""

from __future__ import annotations

import functools
import logging
from dataclasses import dataclass
from typing import Callable, Generic, Optional, TypeVar

from domain.errors import AuctionError, ErrorKind

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class OperationResult(Generic[T]):
    """
    Result of an engine operation.

    success: True if the operation was applied
    value: the updated entity (or query result) when success is True
    error: the AuctionError explaining why nothing was applied otherwise
    """

    success: bool
    value: Optional[T] = None
    error: Optional[AuctionError] = None

    @staticmethod
    def ok(value: T) -> "OperationResult[T]":
        return OperationResult(success=True, value=value)

    @staticmethod
    def fail(error: AuctionError) -> "OperationResult[T]":
        return OperationResult(success=False, error=error)

    @property
    def error_code(self) -> Optional[str]:
        return self.error.code if self.error is not None else None

    @property
    def error_kind(self) -> Optional[ErrorKind]:
        return self.error.kind if self.error is not None else None

    def unwrap(self) -> T:
        """Return the value, re-raising the error for callers that prefer exceptions."""

        if self.error is not None:
            raise self.error
        return self.value  # type: ignore[return-value]


def returns_result(operation: Callable[..., T]) -> Callable[..., OperationResult[T]]:
    """Wrap an operation that raises AuctionError so it returns an OperationResult."""

    @functools.wraps(operation)
    def wrapper(*args, **kwargs) -> OperationResult[T]:
        try:
            return OperationResult.ok(operation(*args, **kwargs))
        except AuctionError as e:
            log = logger.warning if e.kind is ErrorKind.STATE_CONFLICT else logger.info
            log(
                f"{operation.__qualname__} rejected: {e.message}",
                extra={"operation": operation.__qualname__, "error_code": e.code, "error_kind": e.kind.value},
            )
            return OperationResult.fail(e)

    return wrapper


__all__ = [
    "OperationResult",
    "returns_result",
]
