"""Shared result and failure types."""

from .result import (
    Failure,
    PolicyConfigurationError,
    Result,
    ServerErrorFailure,
    ValidationError,
    ValidationErrorFailure,
    failed,
    failed_validation,
    failed_validation_errors,
    succeeded,
)

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
