"""
Error types for flagcore.

Provides structured error handling with categories for better error management.
"""

from enum import Enum
from typing import Optional


class ErrorCategory(str, Enum):
    """Categories of errors for classification."""

    VALIDATION = "validation"
    INCONCLUSIVE = "inconclusive"
    INVALID_OPERATOR = "invalid_operator"
    UNKNOWN = "unknown"


class FlagCoreError(Exception):
    """Base exception for all flagcore errors."""

    def __init__(
        self,
        message: str,
        category: ErrorCategory = ErrorCategory.UNKNOWN,
    ):
        super().__init__(message)
        self.message = message
        self.category = category

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(message={self.message!r}, category={self.category})"


class MalformedFlagError(FlagCoreError):
    """Raised when a flag definition does not have the expected structure."""

    def __init__(self, message: str = "Malformed flag definition", flag_key: Optional[str] = None):
        super().__init__(message, category=ErrorCategory.VALIDATION)
        self.flag_key = flag_key


class InconclusiveMatchError(FlagCoreError):
    """
    Raised when a flag cannot be decided with the data available locally.

    Callers are expected to fall back to remote evaluation. This is never
    the same as the flag being off.
    """

    def __init__(self, message: str = "Can't determine if feature flag is enabled or not with given properties"):
        super().__init__(message, category=ErrorCategory.INCONCLUSIVE)


class InvalidOperatorError(FlagCoreError):
    """Raised when an operator is used where it has no meaning (a programming error)."""

    def __init__(self, operator: str):
        super().__init__(f"Invalid operator: {operator}", category=ErrorCategory.INVALID_OPERATOR)
        self.operator = operator
