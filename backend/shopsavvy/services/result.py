# Overview: Result envelope returned by every ledger operation instead of raising.

from __future__ import annotations

import functools
from dataclasses import dataclass
from typing import Any, Generic, Optional, TypeVar

from ..validation import LedgerError

T = TypeVar("T")


@dataclass(frozen=True)
class Result(Generic[T]):
    """
    Outcome of a ledger operation.

    Callers must check `success` before trusting `data`. On failure `error` is
    the literal, user-presentable message and `error_type` is one of
    validation | not_found | conflict | io.
    """
    success: bool
    data: Optional[T] = None
    error: Optional[str] = None
    error_type: Optional[str] = None

    @classmethod
    def ok(cls, data: Any = None) -> "Result":
        return cls(success=True, data=data)

    @classmethod
    def fail(cls, error: str, error_type: str = "error") -> "Result":
        return cls(success=False, error=error, error_type=error_type)

    @classmethod
    def from_error(cls, exc: LedgerError) -> "Result":
        return cls.fail(str(exc), exc.error_type)

    def to_dict(self) -> dict:
        data = self.data
        if hasattr(data, "to_dict"):
            data = data.to_dict()
        elif isinstance(data, list):
            data = [d.to_dict() if hasattr(d, "to_dict") else d for d in data]
        out: dict = {"success": self.success}
        if self.success:
            out["data"] = data
        else:
            out["error"] = self.error
            out["error_type"] = self.error_type
        return out


def result_boundary(func):
    """
    Convert LedgerError raised inside an operation into a failed Result.

    Anything that is not a LedgerError is a programming error and propagates.
    """
    @functools.wraps(func)
    def wrapper(*args, **kwargs) -> Result:
        try:
            return Result.ok(func(*args, **kwargs))
        except LedgerError as exc:
            return Result.from_error(exc)
    return wrapper
