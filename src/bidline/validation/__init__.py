"""Validation module for checking and repairing stored metrics."""

from bidline.validation.validator import (
    MetricsValidator,
    ValidationError,
    ValidationErrorType,
    ValidationResult,
)

__all__ = [
    "MetricsValidator",
    "ValidationError",
    "ValidationErrorType",
    "ValidationResult",
]
