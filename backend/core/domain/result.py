"""Success / error result variants returned across service boundaries."""
from dataclasses import dataclass
from typing import Generic, TypeVar

from .errors import BillingError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome carrying a value."""

    value: T

    @property
    def is_ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    """Failed outcome carrying the typed error."""

    error: BillingError

    @property
    def is_ok(self) -> bool:
        return False


Result = Ok[T] | Err
