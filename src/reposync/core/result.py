"""
Result Type Implementation.

A small Ok/Err pair used to record the outcome of each key in a batch run
without letting one failure interrupt the others.
"""

from dataclasses import dataclass
from typing import Generic, List, Tuple, TypeVar, Union

T = TypeVar("T")
E = TypeVar("E")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying a value."""

    value: T

    def is_ok(self) -> bool:
        return True

    def is_err(self) -> bool:
        return False

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True)
class Err(Generic[E]):
    """Failed outcome carrying the error."""

    error: E

    def is_ok(self) -> bool:
        return False

    def is_err(self) -> bool:
        return True

    def unwrap(self) -> T:
        raise ValueError(f"Called unwrap on Err: {self.error}")


Result = Union[Ok[T], Err[E]]


def partition(results: List[Result[T, E]]) -> Tuple[List[T], List[E]]:
    """Split results into the Ok values and the Err errors, keeping order."""
    values = [r.value for r in results if isinstance(r, Ok)]
    errors = [r.error for r in results if isinstance(r, Err)]
    return values, errors
