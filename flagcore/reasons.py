"""
Evaluation reasons for flagcore.

Provides detailed information about why a flag evaluated to a particular value.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Optional, Union

from flagcore.models import FlagValue, Inconclusive


class EvaluationReasonKind(str, Enum):
    """The category of reason for a flag evaluation."""

    INACTIVE = "INACTIVE"  # Flag is switched off
    CONDITION_MATCH = "CONDITION_MATCH"  # Subject satisfied a condition group
    NO_CONDITION_MATCH = "NO_CONDITION_MATCH"  # No condition group was satisfied
    INCONCLUSIVE = "INCONCLUSIVE"  # Not enough local data, evaluate remotely
    ERROR = "ERROR"  # An error occurred during evaluation


class EvaluationErrorKind(str, Enum):
    """Types of errors that can occur during evaluation."""

    MALFORMED_FLAG = "MALFORMED_FLAG"  # The flag definition is invalid
    EXCEPTION = "EXCEPTION"  # An unexpected error occurred


@dataclass
class EvaluationReason:
    """Explains why a flag evaluated to a particular value."""

    kind: EvaluationReasonKind
    condition_index: Optional[int] = None
    variant_override: Optional[bool] = None
    description: Optional[str] = None
    error_kind: Optional[EvaluationErrorKind] = None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        result = {"kind": self.kind.value}
        if self.condition_index is not None:
            result["conditionIndex"] = self.condition_index
        if self.variant_override is not None:
            result["variantOverride"] = self.variant_override
        if self.description is not None:
            result["description"] = self.description
        if self.error_kind is not None:
            result["errorKind"] = self.error_kind.value
        return result


@dataclass
class EvaluationDetail:
    """Contains the full result of a flag evaluation."""

    value: Union[FlagValue, Inconclusive]
    reason: EvaluationReason
    variant: Optional[str] = None

    @property
    def is_inconclusive(self) -> bool:
        return isinstance(self.value, Inconclusive)

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        value: Any = None if self.is_inconclusive else self.value
        result = {"value": value, "reason": self.reason.to_dict()}
        if self.variant is not None:
            result["variant"] = self.variant
        return result


# Helper functions to create common reasons


def inactive_reason() -> EvaluationReason:
    """Create a reason for a switched-off flag."""
    return EvaluationReason(kind=EvaluationReasonKind.INACTIVE)


def condition_match_reason(condition_index: int, variant_override: bool = False) -> EvaluationReason:
    """Create a reason for a condition group match."""
    return EvaluationReason(
        kind=EvaluationReasonKind.CONDITION_MATCH,
        condition_index=condition_index,
        variant_override=variant_override,
    )


def no_condition_match_reason() -> EvaluationReason:
    """Create a reason for a flag none of whose groups matched."""
    return EvaluationReason(kind=EvaluationReasonKind.NO_CONDITION_MATCH)


def inconclusive_reason(description: str) -> EvaluationReason:
    """Create a reason for a flag that must be evaluated remotely."""
    return EvaluationReason(kind=EvaluationReasonKind.INCONCLUSIVE, description=description)


def error_reason(error_kind: EvaluationErrorKind, description: Optional[str] = None) -> EvaluationReason:
    """Create a reason for an error."""
    return EvaluationReason(kind=EvaluationReasonKind.ERROR, error_kind=error_kind, description=description)
