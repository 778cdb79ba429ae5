"""
Core Type Definitions for the StakeMesh Betting Core

Implements a Result type for fallible setup paths (configuration loading
and validation) plus the identifier and clock aliases shared by the stores.

Design Principles:
- Expected absence is ``None``, never an exception
- Fallible configuration returns Result instead of raising
- Identifiers stay plain ints on the hot path (no wrapper allocation)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Generic, Literal, NoReturn, TypeVar, Union

T = TypeVar("T")  # Success type
E = TypeVar("E")  # Error type


# =============================================================================
# RESULT
# =============================================================================
@dataclass(frozen=True, slots=True)
class Ok(Generic[T]):
    """Successful outcome carrying ``value``."""

    value: T

    def is_ok(self) -> Literal[True]:
        return True

    def is_err(self) -> Literal[False]:
        return False

    def unwrap(self) -> T:
        return self.value


@dataclass(frozen=True, slots=True)
class Err(Generic[E]):
    """Failed outcome carrying ``error``."""

    error: E

    def is_ok(self) -> Literal[False]:
        return False

    def is_err(self) -> Literal[True]:
        return True

    def unwrap(self) -> NoReturn:
        """
        Raise instead of returning a value.

        Raises:
            The carried error itself when it is an exception, otherwise
            RuntimeError describing it
        """
        if isinstance(self.error, BaseException):
            raise self.error
        raise RuntimeError(f"unwrap() called on Err({self.error!r})")


Result = Union[Ok[T], Err[E]]


# =============================================================================
# IDENTIFIERS
# =============================================================================
# Validated by the transport layer before reaching the core.
CustomerId = int
OfferId = int
Stake = int
Token = str


# =============================================================================
# CLOCKS
# =============================================================================
# Monotonic seconds, time.monotonic by default. Injected for deterministic
# expiry tests.
Clock = Callable[[], float]

# Wall-clock milliseconds since the Unix epoch, used by token generation.
MillisClock = Callable[[], int]
