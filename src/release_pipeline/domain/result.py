"""Result pattern implementation for the release gates.

Gate and catalogue operations return a Result instead of raising, so a
precondition violation reaches the caller as a value and never leaves a
half-applied state change behind.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Generic, TypeVar, cast

T = TypeVar('T')  # Success type
E = TypeVar('E', bound=Exception)  # Error type


class Result(ABC, Generic[T, E]):
    """Either a successful value or a domain error."""

    @abstractmethod
    def is_success(self) -> bool:
        """Check if the result is a success."""
        ...

    @abstractmethod
    def is_failure(self) -> bool:
        """Check if the result is a failure."""
        ...

    @abstractmethod
    def value(self) -> T:
        """Get the success value.

        Raises:
            ValueError: If the result is a failure.
        """
        ...

    @abstractmethod
    def error(self) -> E:
        """Get the error.

        Raises:
            ValueError: If the result is a success.
        """
        ...

    @abstractmethod
    def map(self, fn: Callable[[T], Any]) -> Result[Any, E]:
        """Map the success value through a function."""
        ...

    def or_else(self, default: T) -> T:
        """Get the success value or return a default."""
        return self.value() if self.is_success() else default

    def match(self, *, success: Callable[[T], Any] | None = None,
              failure: Callable[[E], Any] | None = None) -> Any:
        """Pattern match on the result."""
        if self.is_success() and success:
            return success(self.value())
        elif self.is_failure() and failure:
            return failure(self.error())
        return None


@dataclass(frozen=True, slots=True)
class Success(Result[T, E]):
    """Represents a successful operation with a value."""
    _value: T

    def __repr__(self) -> str:
        return f"Success({self._value!r})"

    def is_success(self) -> bool:
        return True

    def is_failure(self) -> bool:
        return False

    def value(self) -> T:
        return self._value

    def error(self) -> E:
        raise ValueError("Cannot get error from Success result")

    def map(self, fn: Callable[[T], Any]) -> Result[Any, E]:
        try:
            return Success(fn(self._value))
        except Exception as e:
            return Failure(cast(E, e))


@dataclass(frozen=True, slots=True)
class Failure(Result[T, E]):
    """Represents a failed operation with an error."""
    _error: E

    def __repr__(self) -> str:
        return f"Failure({self._error!r})"

    def is_success(self) -> bool:
        return False

    def is_failure(self) -> bool:
        return True

    def value(self) -> T:
        raise ValueError(f"Cannot get value from Failure result: {self._error}")

    def error(self) -> E:
        return self._error

    def map(self, fn: Callable[[T], Any]) -> Result[Any, E]:
        return self


def success(value: T) -> Result[T, Any]:
    """Create a Success result."""
    return Success(value)


def failure(error: E) -> Result[Any, E]:
    """Create a Failure result."""
    return Failure(error)


def partition(results: list[Result[T, E]]) -> tuple[list[T], list[E]]:
    """Split Results into (success_values, failure_errors), keeping order."""
    successes = []
    failures = []
    for result in results:
        if result.is_success():
            successes.append(result.value())
        else:
            failures.append(result.error())
    return successes, failures


# Domain errors surfaced through Failure results
class DomainError(Exception):
    """Base class for domain-specific errors."""
    pass


class ValidationError(DomainError):
    """Raised when input validation fails."""
    pass


class NotFoundError(DomainError):
    """Raised when a release or track does not exist."""
    pass


class AuthorizationError(DomainError):
    """Raised when the requester may not act on a release."""
    pass


class InvalidTransitionError(DomainError):
    """Raised when the current status does not permit the requested transition."""

    def __init__(self, message: str, current=None, target=None):
        super().__init__(message)
        self.current = current
        self.target = target


class ConflictError(DomainError):
    """Raised when a concurrent writer changed the release first."""
    pass


class StatusConflictError(ConflictError):
    """Raised by a store when a compare-and-swap status write loses."""

    def __init__(self, release_id: str, expected, actual):
        super().__init__(
            f"Release {release_id} is '{getattr(actual, 'value', actual)}', "
            f"expected '{getattr(expected, 'value', expected)}'"
        )
        self.release_id = release_id
        self.expected = expected
        self.actual = actual
