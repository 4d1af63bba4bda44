"""
Property condition matching.

Each operator has one handler. A handler receives the condition value, the
supplied value and the evaluation instant, and returns ``True``/``False`` or
an ``Inconclusive`` marker when the answer can't be known locally.
"""

import logging
import re
from datetime import datetime
from typing import Any, Callable, Dict, Mapping, Optional, Union

from flagcore.dates import relative_date_parse, to_datetime
from flagcore.errors import InvalidOperatorError
from flagcore.models import Inconclusive, Operator, PropertyCondition

logger = logging.getLogger("flagcore.properties")

MatchOutcome = Union[bool, Inconclusive]

_NUMERIC_PATTERN = re.compile(r"^\s*[+-]?(\d+(\.\d*)?|\.\d+)([eE][+-]?\d+)?\s*$")
_DELIMITED_REGEX = re.compile(r"^/(?P<body>.*)/(?P<flags>[A-Za-z]*)$", re.DOTALL)
_UNESCAPED_SLASH = re.compile(r"(?:^|[^\\])(?:\\\\)*/")
_REGEX_FLAGS = {
    "i": re.IGNORECASE,
    "m": re.MULTILINE,
    "s": re.DOTALL,
    "x": re.VERBOSE,
    "u": 0,
}


def match_property(
    condition: PropertyCondition,
    values: Mapping[str, Any],
    now: Optional[datetime] = None,
) -> MatchOutcome:
    """
    Check a single property condition against the supplied property values.

    Args:
        condition: The condition to test
        values: Property values of the subject being evaluated
        now: Evaluation instant used by relative date operators

    Returns:
        True or False, or Inconclusive when the supplied values can't decide it
    """
    operator = Operator.lookup(condition.operator)
    if operator is None:
        return Inconclusive(f"Unknown operator {condition.operator}")

    if operator is Operator.IS_NOT_SET:
        return Inconclusive("Can't match properties with operator is_not_set")

    if condition.key not in values:
        if operator is Operator.IS_SET:
            return False
        return Inconclusive(f"Can't match properties without a given property value for {condition.key!r}")

    return _HANDLERS[operator](condition.value, values[condition.key], now)


def stringify(value: Any) -> str:
    """Render a property value the way string operators see it."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def parse_number(value: Any) -> Optional[float]:
    """Return ``value`` as a float if it is a number or a numeric string."""
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return float(value)
    if isinstance(value, str) and _NUMERIC_PATTERN.match(value):
        return float(value)
    return None


def compare(lhs: Any, rhs: Any, operator: Operator) -> bool:
    """
    Three-way compare two values of the same kind under an ordering operator.

    Strings compare by code point, numbers numerically.
    """
    comparison = (lhs > rhs) - (lhs < rhs)

    if operator is Operator.GT:
        return comparison > 0
    elif operator is Operator.GTE:
        return comparison >= 0
    elif operator is Operator.LT:
        return comparison < 0
    elif operator is Operator.LTE:
        return comparison <= 0

    raise InvalidOperatorError(getattr(operator, "value", str(operator)))


def compile_condition_regex(value: Any) -> Optional["re.Pattern[str]"]:
    """
    Compile a condition value as a regular expression.

    ``/body/flags`` delimited patterns are unwrapped and their flags applied;
    anything else is wrapped in ``/`` delimiters first, so a leading or
    trailing slash is dropped. Returns None for an invalid pattern: an empty
    value, an unknown flag, or a body with an unescaped ``/``.
    """
    pattern = stringify(value)
    if not pattern:
        logger.debug("Empty regex in property condition")
        return None

    flags = 0
    delimited = _DELIMITED_REGEX.match(pattern)
    if delimited:
        body = delimited.group("body")
        for flag in delimited.group("flags"):
            if flag not in _REGEX_FLAGS:
                logger.debug(f"Unknown flag {flag!r} in regex {value!r}")
                return None
            flags |= _REGEX_FLAGS[flag]
    else:
        body = pattern[1:] if pattern.startswith("/") else pattern
        if body.endswith("/"):
            body = body[:-1]

    if _UNESCAPED_SLASH.search(body):
        logger.debug(f"Unescaped delimiter in regex {value!r}")
        return None

    try:
        return re.compile(body, flags)
    except re.error as e:
        logger.debug(f"Invalid regex {value!r} in property condition: {e}")
        return None


def _exact(value: Any, override: Any) -> bool:
    supplied = stringify(override).lower()
    if isinstance(value, (list, tuple)):
        return supplied in [stringify(v).lower() for v in value]
    return stringify(value).lower() == supplied


def _match_exact(value: Any, override: Any, now: Optional[datetime]) -> MatchOutcome:
    return _exact(value, override)


def _match_is_not(value: Any, override: Any, now: Optional[datetime]) -> MatchOutcome:
    return not _exact(value, override)


def _match_is_set(value: Any, override: Any, now: Optional[datetime]) -> MatchOutcome:
    # Reached only when the key is present.
    return True


def _match_is_not_set(value: Any, override: Any, now: Optional[datetime]) -> MatchOutcome:
    return Inconclusive("Can't match properties with operator is_not_set")


def _icontains(value: Any, override: Any) -> bool:
    return stringify(value).lower() in stringify(override).lower()


def _match_icontains(value: Any, override: Any, now: Optional[datetime]) -> MatchOutcome:
    return _icontains(value, override)


def _match_not_icontains(value: Any, override: Any, now: Optional[datetime]) -> MatchOutcome:
    return not _icontains(value, override)


def _regex_matches(value: Any, override: Any) -> Optional[bool]:
    pattern = compile_condition_regex(value)
    if pattern is None:
        return None
    return pattern.search(stringify(override)) is not None


def _match_regex(value: Any, override: Any, now: Optional[datetime]) -> MatchOutcome:
    matched = _regex_matches(value, override)
    return bool(matched)


def _match_not_regex(value: Any, override: Any, now: Optional[datetime]) -> MatchOutcome:
    matched = _regex_matches(value, override)
    if matched is None:
        return False
    return not matched


def _ordering(operator: Operator) -> Callable[[Any, Any, Optional[datetime]], MatchOutcome]:
    def handler(value: Any, override: Any, now: Optional[datetime]) -> MatchOutcome:
        parsed = parse_number(value)
        if parsed is not None and override is not None:
            if isinstance(override, str):
                return compare(override, stringify(value), operator)
            if isinstance(override, (int, float)):
                return compare(override, parsed, operator)
        return compare(stringify(override), stringify(value), operator)

    return handler


def _date_comparison(relative: bool, before: bool) -> Callable[[Any, Any, Optional[datetime]], MatchOutcome]:
    def handler(value: Any, override: Any, now: Optional[datetime]) -> MatchOutcome:
        parsed_date = relative_date_parse(value, now) if relative else to_datetime(value)
        if parsed_date is None or isinstance(parsed_date, Inconclusive):
            return Inconclusive("The date set on the flag is not a valid format")

        override_date = to_datetime(override)
        if isinstance(override_date, Inconclusive):
            return override_date
        if before:
            return override_date < parsed_date
        return override_date > parsed_date

    return handler


_HANDLERS: Dict[Operator, Callable[[Any, Any, Optional[datetime]], MatchOutcome]] = {
    Operator.EXACT: _match_exact,
    Operator.IS_NOT: _match_is_not,
    Operator.IS_SET: _match_is_set,
    Operator.IS_NOT_SET: _match_is_not_set,
    Operator.ICONTAINS: _match_icontains,
    Operator.NOT_ICONTAINS: _match_not_icontains,
    Operator.REGEX: _match_regex,
    Operator.NOT_REGEX: _match_not_regex,
    Operator.GT: _ordering(Operator.GT),
    Operator.GTE: _ordering(Operator.GTE),
    Operator.LT: _ordering(Operator.LT),
    Operator.LTE: _ordering(Operator.LTE),
    Operator.IS_DATE_BEFORE: _date_comparison(relative=False, before=True),
    Operator.IS_DATE_AFTER: _date_comparison(relative=False, before=False),
    Operator.IS_RELATIVE_DATE_BEFORE: _date_comparison(relative=True, before=True),
    Operator.IS_RELATIVE_DATE_AFTER: _date_comparison(relative=True, before=False),
}
