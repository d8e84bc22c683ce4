"""
Custom Exception Classes for the PGP engine

This module defines the exception classes raised by the postfix genetic
programming engine. All custom exceptions inherit from PgpError so callers can
handle every engine failure with a single except clause.

Numeric evaluation failure (NaN or infinite intermediate values) is deliberately
absent from this hierarchy: it is an ordinary outcome of evolving random
programs and is reported as an undefined (NaN) fitness instead.

Exception Hierarchy:
    PgpError (base)
    ├── ConfigurationError
    │   ├── InvalidConfigError
    │   └── MissingConfigError
    ├── DataError
    │   └── DataValidationError
    ├── EvaluationError
    │   └── ProgramStructureError
    └── SearchError
        ├── OptimizationError
        └── UnsupportedOperationError
"""

from typing import Optional, Any, Dict


class PgpError(Exception):
    """
    Base exception for all engine-specific errors.

    Attributes:
        message: Primary error message
        context: Additional context information (optional)
        suggestion: Suggested action to resolve the error (optional)
        cause: Original exception that caused this error (optional)
    """

    def __init__(
        self,
        message: str,
        context: Optional[Dict[str, Any]] = None,
        suggestion: Optional[str] = None,
        cause: Optional[Exception] = None
    ):
        super().__init__(message)
        self.message = message
        self.context = context or {}
        self.suggestion = suggestion
        self.cause = cause

    def __str__(self) -> str:
        """Return a comprehensive string representation of the error."""
        result = self.message

        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            result += f" (Context: {context_str})"

        if self.suggestion:
            result += f" | Suggestion: {self.suggestion}"

        return result


# Configuration-related exceptions
class ConfigurationError(PgpError):
    """Base class for configuration-related errors."""
    pass


class InvalidConfigError(ConfigurationError):
    """
    Raised when configuration data is invalid or malformed.

    Configuration is validated once, at construction time, so this error
    rejects an engine before any evolution work starts.
    """

    def __init__(
        self,
        message: str,
        config_field: Optional[str] = None,
        invalid_value: Optional[Any] = None,
        **kwargs
    ):
        context = {}
        if config_field:
            context['field'] = config_field
        if invalid_value is not None:
            context['invalid_value'] = invalid_value

        suggestion = "Check configuration parameter values"
        if config_field:
            suggestion += f" for field '{config_field}'"

        super().__init__(message, context=context, suggestion=suggestion, **kwargs)


class MissingConfigError(ConfigurationError):
    """Raised when required configuration is missing."""

    def __init__(self, missing_field: str, config_file: Optional[str] = None, **kwargs):
        message = f"Missing required configuration field: '{missing_field}'"
        context = {'missing_field': missing_field}
        if config_file:
            context['config_file'] = config_file

        suggestion = f"Provide a value for '{missing_field}'"
        super().__init__(message, context=context, suggestion=suggestion, **kwargs)


# Data-related exceptions
class DataError(PgpError):
    """Base class for data-related errors."""
    pass


class DataValidationError(DataError):
    """Raised when data fails validation checks."""

    def __init__(self, validation_issue: str, data_source: Optional[str] = None, **kwargs):
        message = f"Data validation failed: {validation_issue}"
        context = {'validation_issue': validation_issue}
        if data_source:
            context['data_source'] = data_source

        suggestion = "Review data quality and column names"
        super().__init__(message, context=context, suggestion=suggestion, **kwargs)


# Evaluation-related exceptions
class EvaluationError(PgpError):
    """Base class for program evaluation errors."""
    pass


class ProgramStructureError(EvaluationError):
    """
    Raised when a program violates the arity-balance invariant.

    A well-formed postfix program leaves exactly one value on the evaluation
    stack and never pops from an empty stack. Anything else means a genetic
    operator produced a corrupted program, which is a defect rather than a
    numeric accident.
    """

    def __init__(
        self,
        issue: str,
        program: Optional[str] = None,
        residual: Optional[int] = None,
        **kwargs
    ):
        message = f"Corrupted program: {issue}"
        context: Dict[str, Any] = {'issue': issue}
        if program is not None:
            context['program'] = program
        if residual is not None:
            context['residual'] = residual

        suggestion = "Check the genetic operator that produced this program"
        super().__init__(message, context=context, suggestion=suggestion, **kwargs)


# Search-related exceptions
class SearchError(PgpError):
    """Base class for evolutionary search errors."""
    pass


class OptimizationError(SearchError):
    """Raised when the search fails or a result is requested before fitting."""
    pass


class UnsupportedOperationError(SearchError):
    """Raised when a requested operation, strategy or preset is not supported."""

    def __init__(
        self,
        operation: str,
        context_info: Optional[str] = None,
        alternative: Optional[str] = None,
        **kwargs
    ):
        message = f"Unsupported operation: '{operation}'"
        if context_info:
            message += f" in context: {context_info}"

        context = {'operation': operation}
        if context_info:
            context['context_info'] = context_info
        if alternative:
            context['alternative'] = alternative

        suggestion = "Use a supported operation or feature"
        if alternative:
            suggestion += f". Consider using: {alternative}"

        super().__init__(message, context=context, suggestion=suggestion, **kwargs)

