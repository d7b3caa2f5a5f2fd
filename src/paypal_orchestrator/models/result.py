"""Result type returned by processor-facing calls."""

from dataclasses import dataclass
from typing import Generic, TypeVar, Union

from paypal_orchestrator.models.errors import PaymentError

T = TypeVar("T")


@dataclass(frozen=True)
class Ok(Generic[T]):
    """Successful outcome."""

    value: T

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class Err:
    """Failed outcome with a translated error."""

    error: PaymentError

    @property
    def ok(self) -> bool:
        return False


Result = Union[Ok[T], Err]
