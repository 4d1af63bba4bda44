"""
flagcore - local feature flag evaluation.

Usage:
    from flagcore import FlagDefinition, LocalEvaluator, Inconclusive

    flag = FlagDefinition.from_dict(definition_json)
    result = LocalEvaluator().evaluate(flag, "user-123", {"plan": "pro"})

    if isinstance(result, Inconclusive):
        # Not enough local data: ask the remote evaluation service
        pass
"""

from flagcore.config import EvaluatorConfig, DEFAULT_EVALUATOR_CONFIG
from flagcore.errors import (
    FlagCoreError,
    MalformedFlagError,
    InconclusiveMatchError,
    InvalidOperatorError,
    ErrorCategory,
)
from flagcore.models import (
    Operator,
    Inconclusive,
    FlagValue,
    PropertyCondition,
    ConditionGroup,
    Variant,
    MultivariateSpec,
    FlagDefinition,
)
from flagcore.hashing import bucket_hash, LONG_SCALE
from flagcore.dates import relative_date_parse, to_datetime
from flagcore.properties import match_property
from flagcore.variants import VariantRange, variant_lookup_table, get_matching_variant
from flagcore.evaluate import (
    ConditionMatch,
    LocalEvaluator,
    sort_condition_groups,
    is_condition_match,
    match_flag_conditions,
    match_feature_flag_properties,
    compute_flag_locally,
    evaluate_flag_detail,
    evaluate_all_flags,
)
from flagcore.reasons import (
    EvaluationReason,
    EvaluationDetail,
    EvaluationReasonKind,
    EvaluationErrorKind,
)

__version__ = "1.0.0"
__all__ = [
    # Config
    "EvaluatorConfig",
    "DEFAULT_EVALUATOR_CONFIG",
    # Errors
    "FlagCoreError",
    "MalformedFlagError",
    "InconclusiveMatchError",
    "InvalidOperatorError",
    "ErrorCategory",
    # Definitions
    "Operator",
    "Inconclusive",
    "FlagValue",
    "PropertyCondition",
    "ConditionGroup",
    "Variant",
    "MultivariateSpec",
    "FlagDefinition",
    # Matching
    "bucket_hash",
    "LONG_SCALE",
    "relative_date_parse",
    "to_datetime",
    "match_property",
    "VariantRange",
    "variant_lookup_table",
    "get_matching_variant",
    # Evaluation
    "ConditionMatch",
    "LocalEvaluator",
    "sort_condition_groups",
    "is_condition_match",
    "match_flag_conditions",
    "match_feature_flag_properties",
    "compute_flag_locally",
    "evaluate_flag_detail",
    "evaluate_all_flags",
    # Reasons
    "EvaluationReason",
    "EvaluationDetail",
    "EvaluationReasonKind",
    "EvaluationErrorKind",
]
