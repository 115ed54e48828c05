"""Result values returned by every circulation computation.

Failures never cross a component boundary as exceptions. A computation
returns a :class:`Result` holding either a value or a :class:`Failure`
cause. Validation failures carry one or more :class:`ValidationError`
entries so that multi-rule operations can report every violated rule at
once.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Generic, Iterable, List, Optional, Tuple, TypeVar

T = TypeVar("T")
U = TypeVar("U")
V = TypeVar("V")


@dataclass(frozen=True)
class ValidationError:
    """A business rule violation with named parameters for the offending fields."""

    message: str
    parameters: Dict[str, Optional[str]] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "message": self.message,
            "parameters": [
                {"key": key, "value": value} for key, value in self.parameters.items()
            ],
        }


@dataclass(frozen=True)
class PolicyConfigurationError(ValidationError):
    """Validation error caused by incomplete or malformed policy data."""

    @classmethod
    def from_error(cls, error: ValidationError) -> "PolicyConfigurationError":
        return cls(message=error.message, parameters=dict(error.parameters))


class Failure:
    """Base class for failure causes."""

    def to_dict(self) -> dict[str, Any]:
        raise NotImplementedError


@dataclass(frozen=True)
class ValidationErrorFailure(Failure):
    errors: Tuple[ValidationError, ...]

    def __post_init__(self) -> None:
        object.__setattr__(self, "errors", tuple(self.errors))

    @property
    def messages(self) -> List[str]:
        return [error.message for error in self.errors]

    def has_error_with_message(self, message: str) -> bool:
        return any(error.message == message for error in self.errors)

    def to_dict(self) -> dict[str, Any]:
        return {"errors": [error.to_dict() for error in self.errors]}


@dataclass(frozen=True)
class ServerErrorFailure(Failure):
    """Opaque failure produced from an unexpected exception."""

    reason: str

    @classmethod
    def from_exception(cls, exc: BaseException) -> "ServerErrorFailure":
        return cls(reason=f"{type(exc).__name__}: {exc}")

    def to_dict(self) -> dict[str, Any]:
        return {"reason": self.reason}


@dataclass(frozen=True)
class Result(Generic[T]):
    value: Optional[T] = None
    cause: Optional[Failure] = None

    def is_success(self) -> bool:
        return self.cause is None

    def is_failure(self) -> bool:
        return self.cause is not None

    def map(self, mapper: Callable[[T], U]) -> "Result[U]":
        if self.is_failure():
            return Result(cause=self.cause)
        return succeeded(mapper(self.value))

    def next(self, action: Callable[[T], "Result[U]"]) -> "Result[U]":
        if self.is_failure():
            return Result(cause=self.cause)
        return action(self.value)

    def combine(self, other: "Result[U]", combiner: Callable[[T, U], V]) -> "Result[V]":
        if self.is_failure():
            return Result(cause=self.cause)
        if other.is_failure():
            return Result(cause=other.cause)
        return succeeded(combiner(self.value, other.value))

    def validation_errors(self) -> List[ValidationError]:
        """Return the validation errors of a failed result, empty otherwise."""

        if isinstance(self.cause, ValidationErrorFailure):
            return list(self.cause.errors)
        return []


def succeeded(value: T) -> Result[T]:
    return Result(value=value)


def failed(cause: Failure) -> Result[Any]:
    return Result(cause=cause)


def failed_validation(message: str, key: str, value: Optional[str]) -> Result[Any]:
    return failed(ValidationErrorFailure((ValidationError(message, {key: value}),)))


def failed_validation_errors(errors: Iterable[ValidationError]) -> Result[Any]:
    return failed(ValidationErrorFailure(tuple(errors)))


__all__ = [
    "Failure",
    "PolicyConfigurationError",
    "Result",
    "ServerErrorFailure",
    "ValidationError",
    "ValidationErrorFailure",
    "failed",
    "failed_validation",
    "failed_validation_errors",
    "succeeded",
]
