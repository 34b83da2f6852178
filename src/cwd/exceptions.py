"""
Exception hierarchy for the cwd toolkit.

All errors derive from ``CwdError``, which is a ``ValueError`` so that
callers catching ``ValueError`` around input validation keep working.
"""

from dataclasses import dataclass
from typing import Optional


@dataclass
class ErrorContext:
    """Where in the input an error was found"""
    row: Optional[int] = None
    column: Optional[str] = None


class CwdError(ValueError):
    """Base exception for all cwd errors"""

    def __init__(self, message: str, row: Optional[int] = None,
                 column: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.context = ErrorContext(row=row, column=column)

    @property
    def row(self) -> Optional[int]:
        return self.context.row

    @property
    def column(self) -> Optional[str]:
        return self.context.column

    def __str__(self) -> str:
        context_str = ""
        if self.context.column is not None:
            context_str += f" [Column: {self.context.column}]"
        if self.context.row is not None:
            context_str += f" [Row: {self.context.row}]"
        return f"{self.__class__.__name__}: {self.message}{context_str}"


class InvalidConfigurationError(CwdError):
    """Threshold or reset parameters out of range"""
    pass


class MalformedInputError(CwdError):
    """Input table cannot be scanned (columns, ordering, length)"""
    pass


class UndefinedValueError(CwdError):
    """Null or NaN value met in a forcing column"""
    pass
