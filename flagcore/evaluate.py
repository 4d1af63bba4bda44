"""
Local flag evaluation.

Decides a flag from its definition, the subject's distinct id and the
subject's properties, without any network call. When the supplied data is
not enough to decide, the result is an ``Inconclusive`` marker and the
caller is expected to ask the remote evaluation service instead.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Iterable, List, Mapping, Optional, Tuple, Union

from flagcore.config import DEFAULT_EVALUATOR_CONFIG, EvaluatorConfig
from flagcore.dates import utc_now
from flagcore.errors import MalformedFlagError
from flagcore.hashing import ROLLOUT_SALT, bucket_hash
from flagcore.models import ConditionGroup, FlagDefinition, FlagValue, Inconclusive
from flagcore.properties import MatchOutcome, match_property
from flagcore.reasons import (
    EvaluationDetail,
    EvaluationErrorKind,
    condition_match_reason,
    error_reason,
    inactive_reason,
    inconclusive_reason,
    no_condition_match_reason,
)
from flagcore.variants import get_matching_variant

logger = logging.getLogger("flagcore")

FlagInput = Union[FlagDefinition, Mapping[str, Any]]


@dataclass(frozen=True)
class ConditionMatch:
    """The first satisfied condition group and the value it produced."""

    condition_index: int
    value: FlagValue
    variant_override: bool = False


def sort_condition_groups(flag: FlagDefinition) -> List[Tuple[int, ConditionGroup]]:
    """
    Order condition groups for evaluation.

    Groups with a variant override come first so the override of the first
    matching one applies. Declaration order breaks ties; the index is part of
    the sort key rather than left to sort stability.
    """
    indexed = list(enumerate(flag.groups))
    return sorted(indexed, key=lambda item: (0 if item[1].has_variant_override else 1, item[0]))


def is_condition_match(
    flag: FlagDefinition,
    distinct_id: str,
    condition: ConditionGroup,
    properties: Mapping[str, Any],
    now: Optional[datetime] = None,
) -> MatchOutcome:
    """
    Check whether the subject satisfies one condition group.

    All property conditions must hold (the first inconclusive one ends the
    check), then the subject must fall inside the group's rollout.
    """
    rollout_percentage = condition.rollout_percentage

    if condition.properties:
        for prop in condition.properties:
            outcome = match_property(prop, properties, now)
            if isinstance(outcome, Inconclusive):
                return outcome
            if not outcome:
                return False

        if rollout_percentage is None:
            return True

    if rollout_percentage is not None:
        if bucket_hash(flag.key, distinct_id, ROLLOUT_SALT) > rollout_percentage / 100:
            return False

    return True


def match_flag_conditions(
    flag: FlagDefinition,
    distinct_id: str,
    properties: Mapping[str, Any],
    now: Optional[datetime] = None,
) -> Union[ConditionMatch, Inconclusive, None]:
    """
    Find the first satisfied condition group.

    Returns the match, None when every group definitely failed, or
    Inconclusive when no group matched and at least one couldn't be decided.
    """
    inconclusive: Optional[Inconclusive] = None

    for index, condition in sort_condition_groups(flag):
        outcome = is_condition_match(flag, distinct_id, condition, properties, now)
        if isinstance(outcome, Inconclusive):
            logger.debug(f"Flag {flag.key}: condition {index} undecided: {outcome.reason}")
            if inconclusive is None:
                inconclusive = outcome
            continue
        if not outcome:
            continue

        variant_override = condition.variant
        if variant_override is not None and variant_override in flag.variant_keys:
            return ConditionMatch(condition_index=index, value=variant_override, variant_override=True)
        if variant_override is not None:
            logger.debug(f"Flag {flag.key}: override {variant_override!r} is not a declared variant")

        variant = get_matching_variant(flag, distinct_id)
        return ConditionMatch(condition_index=index, value=variant if variant is not None else True)

    if inconclusive is not None:
        return Inconclusive(
            f"Can't determine if feature flag is enabled or not with given properties: {inconclusive.reason}"
        )
    return None


def match_feature_flag_properties(
    flag: FlagDefinition,
    distinct_id: str,
    properties: Mapping[str, Any],
    now: Optional[datetime] = None,
) -> Union[FlagValue, Inconclusive]:
    """
    Evaluate a flag's condition groups.

    Returns:
        The variant key, True for a match without a variant, False when no
        group matched, or Inconclusive when the flag can't be decided locally
    """
    match = match_flag_conditions(flag, distinct_id, properties, now)
    if match is None:
        return False
    if isinstance(match, Inconclusive):
        return match
    return match.value


def compute_flag_locally(
    flag: FlagDefinition,
    distinct_id: str,
    properties: Optional[Mapping[str, Any]] = None,
    now: Optional[datetime] = None,
) -> Union[FlagValue, Inconclusive]:
    """
    Evaluate a flag for a subject.

    Inactive flags are always off. ``now`` is sampled once here so every
    relative date condition of this evaluation uses the same cutoff.
    """
    if not flag.active:
        return False
    return match_feature_flag_properties(flag, distinct_id, properties or {}, now or utc_now())


def evaluate_flag_detail(
    flag: FlagDefinition,
    distinct_id: str,
    properties: Optional[Mapping[str, Any]] = None,
    now: Optional[datetime] = None,
) -> EvaluationDetail:
    """Evaluate a flag and explain the result."""
    if not flag.active:
        return EvaluationDetail(value=False, reason=inactive_reason())

    match = match_flag_conditions(flag, distinct_id, properties or {}, now or utc_now())
    if match is None:
        return EvaluationDetail(value=False, reason=no_condition_match_reason())
    if isinstance(match, Inconclusive):
        return EvaluationDetail(value=match, reason=inconclusive_reason(match.reason))

    return EvaluationDetail(
        value=match.value,
        reason=condition_match_reason(match.condition_index, match.variant_override),
        variant=match.value if isinstance(match.value, str) else None,
    )


def evaluate_all_flags(
    flags: Union[Mapping[str, FlagInput], Iterable[FlagInput]],
    distinct_id: str,
    properties: Optional[Mapping[str, Any]] = None,
    now: Optional[datetime] = None,
) -> Tuple[Dict[str, FlagValue], List[str]]:
    """
    Evaluate several flags for one subject.

    Returns:
        The locally decided values, and the keys of the flags that must be
        evaluated remotely (inconclusive or malformed), in input order
    """
    values: Dict[str, FlagValue] = {}
    fallback_keys: List[str] = []
    now = now or utc_now()
    definitions = flags.values() if isinstance(flags, Mapping) else flags

    for data in definitions:
        try:
            flag = coerce_flag(data)
        except MalformedFlagError as e:
            logger.warning(f"Skipping malformed flag definition: {e.message}")
            if e.flag_key:
                fallback_keys.append(e.flag_key)
            continue

        result = compute_flag_locally(flag, distinct_id, properties, now)
        if isinstance(result, Inconclusive):
            fallback_keys.append(flag.key)
        else:
            values[flag.key] = result

    return values, fallback_keys


def coerce_flag(flag: FlagInput) -> FlagDefinition:
    """Accept either a FlagDefinition or its JSON shape."""
    if isinstance(flag, FlagDefinition):
        return flag
    return FlagDefinition.from_dict(flag)


class LocalEvaluator:
    """
    Local evaluator for flag definitions.

    Holds no flag state: definitions are passed to every call.

    Example:
        ```python
        evaluator = LocalEvaluator(EvaluatorConfig(raise_on_inconclusive=True))

        try:
            value = evaluator.evaluate(flag, "user-123", {"plan": "pro"})
        except InconclusiveMatchError:
            value = remote_evaluate(flag.key, "user-123")
        ```
    """

    def __init__(self, config: EvaluatorConfig = DEFAULT_EVALUATOR_CONFIG):
        """
        Initialize the local evaluator.

        Args:
            config: Evaluator configuration
        """
        self._config = config

    def _now(self) -> datetime:
        if self._config.clock is not None:
            return self._config.clock()
        return utc_now()

    def evaluate(
        self,
        flag: FlagInput,
        distinct_id: str,
        properties: Optional[Mapping[str, Any]] = None,
    ) -> Union[FlagValue, Inconclusive]:
        """
        Evaluate a single flag.

        Raises:
            InconclusiveMatchError: if the flag can't be decided locally and
                ``raise_on_inconclusive`` is set
            MalformedFlagError: if a JSON definition is invalid
        """
        definition = coerce_flag(flag)
        result = compute_flag_locally(definition, distinct_id, properties, self._now())
        if isinstance(result, Inconclusive):
            if self._config.log_inconclusive:
                logger.debug(f"Flag {definition.key} is inconclusive for {distinct_id}: {result.reason}")
            if self._config.raise_on_inconclusive:
                result.raise_error()
        return result

    def evaluate_detail(
        self,
        flag: FlagInput,
        distinct_id: str,
        properties: Optional[Mapping[str, Any]] = None,
    ) -> EvaluationDetail:
        """Evaluate a single flag and explain the result. Never raises."""
        try:
            definition = coerce_flag(flag)
        except MalformedFlagError as e:
            return EvaluationDetail(
                value=False,
                reason=error_reason(EvaluationErrorKind.MALFORMED_FLAG, e.message),
            )
        try:
            detail = evaluate_flag_detail(definition, distinct_id, properties, self._now())
        except Exception as e:
            logger.warning(f"Error evaluating flag {definition.key}: {e}")
            return EvaluationDetail(
                value=False,
                reason=error_reason(EvaluationErrorKind.EXCEPTION, str(e)),
            )
        if detail.is_inconclusive and self._config.log_inconclusive:
            logger.debug(f"Flag {definition.key} is inconclusive for {distinct_id}: {detail.reason.description}")
        return detail

    def evaluate_all(
        self,
        flags: Union[Mapping[str, FlagInput], Iterable[FlagInput]],
        distinct_id: str,
        properties: Optional[Mapping[str, Any]] = None,
    ) -> Tuple[Dict[str, FlagValue], List[str]]:
        """Evaluate all flags. See evaluate_all_flags."""
        return evaluate_all_flags(flags, distinct_id, properties, self._now())
