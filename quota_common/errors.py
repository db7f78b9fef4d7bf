"""Typed failures raised by the quota transform. Messages are shown to users verbatim."""

from __future__ import annotations


class TransformError(ValueError):
    """Base class for every failure raised by :func:`quota_common.normalize.transform`."""


class EmptyInputError(TransformError):
    def __init__(self, message: str = "Input data cannot be empty.") -> None:
        super().__init__(message)


class InsufficientRowsError(TransformError):
    def __init__(self, message: str = "Input must contain a header row and at least one data row.") -> None:
        super().__init__(message)


class MissingHeaderError(TransformError):
    def __init__(self, message: str = 'Missing required header column: "ID" or "RDQuota"') -> None:
        super().__init__(message)


class MissingRequiredColumnError(TransformError):
    """A raw export lacks a column the raw normalizer cannot work without."""

    def __init__(self, field: str) -> None:
        self.field = field
        super().__init__(f'Missing required header column: "{field}"')


class NoValidRowsError(TransformError):
    def __init__(self, message: str = "No valid data rows could be processed. Please check your input.") -> None:
        super().__init__(message)


class ConfigError(ValueError):
    """Raised when transform options or the YAML configuration are invalid."""
