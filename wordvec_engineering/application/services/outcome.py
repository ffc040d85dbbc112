from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, Optional, TypeVar

T = TypeVar("T")


class Status(str, Enum):
    FOUND = "found"
    NOT_FOUND = "not_found"
    DIMENSION_MISMATCH = "dimension_mismatch"
    DEGENERATE_QUERY = "degenerate_query"


class OutcomeError(LookupError):
    """Raised by Outcome.unwrap() when there is no value to hand out."""

    def __init__(self, status: Status, detail: str):
        super().__init__(f"{status.value}: {detail}" if detail else status.value)
        self.status = status
        self.detail = detail


@dataclass(frozen=True)
class Outcome(Generic[T]):
    """
    Tagged result of a store query or a vector arithmetic primitive.

    A FOUND outcome always carries a value (which may itself be an empty
    list or a zero vector); every other status carries None plus a short
    human readable detail.
    """
    status: Status
    value: Optional[T] = None
    detail: str = ""

    @classmethod
    def found(cls, value: T) -> "Outcome[T]":
        return cls(Status.FOUND, value)

    @classmethod
    def not_found(cls, key: Any = None) -> "Outcome[Any]":
        detail = f"'{key}' couldn't be found" if key is not None else "nothing found"
        return cls(Status.NOT_FOUND, None, detail)

    @classmethod
    def dimension_mismatch(cls, expected: int, got: int) -> "Outcome[Any]":
        return cls(Status.DIMENSION_MISMATCH, None, f"expected {expected} dimension(s), got {got}")

    @classmethod
    def degenerate(cls, detail: str) -> "Outcome[Any]":
        return cls(Status.DEGENERATE_QUERY, None, detail)

    @property
    def ok(self) -> bool:
        return self.status is Status.FOUND

    def unwrap(self) -> T:
        if not self.ok:
            raise OutcomeError(self.status, self.detail)
        return self.value  # type: ignore[return-value]

    def value_or(self, default: T) -> T:
        return self.value if self.ok else default  # type: ignore[return-value]
