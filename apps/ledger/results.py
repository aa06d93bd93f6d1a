"""Tagged success/failure result returned by the ledger caller surface."""

from dataclasses import dataclass
from typing import Generic, Optional, TypeVar

from .exceptions import LedgerError


T = TypeVar('T')


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Outcome of a ledger operation.

    Exactly one of ``value`` / ``error`` is meaningful: ``ok`` tells which.
    Callers branch on ``ok`` (or ``code``) instead of catching exceptions
    for expected validation failures.
    """

    ok: bool
    value: Optional[T] = None
    error: Optional[LedgerError] = None

    @classmethod
    def success(cls, value: T = None) -> 'Result[T]':
        return cls(ok=True, value=value)

    @classmethod
    def failure(cls, error: LedgerError) -> 'Result[T]':
        return cls(ok=False, error=error)

    @property
    def code(self) -> Optional[str]:
        return self.error.code if self.error is not None else None

    @property
    def message(self) -> Optional[str]:
        return self.error.message if self.error is not None else None

    def unwrap(self) -> T:
        """Return the value or raise the carried error."""
        if not self.ok:
            raise self.error
        return self.value
