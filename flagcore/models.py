"""
Flag definition types and the local evaluation result model.

Definitions mirror the JSON shape served by the flag registry
(``filters.groups`` / ``filters.multivariate.variants``) and are never
mutated during evaluation.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Mapping, Optional, Union

from flagcore.errors import InconclusiveMatchError, MalformedFlagError


class Operator(str, Enum):
    """Property condition operators understood by the local matcher."""

    EXACT = "exact"
    IS_NOT = "is_not"
    IS_SET = "is_set"
    IS_NOT_SET = "is_not_set"
    ICONTAINS = "icontains"
    NOT_ICONTAINS = "not_icontains"
    REGEX = "regex"
    NOT_REGEX = "not_regex"
    GT = "gt"
    GTE = "gte"
    LT = "lt"
    LTE = "lte"
    IS_DATE_BEFORE = "is_date_before"
    IS_DATE_AFTER = "is_date_after"
    IS_RELATIVE_DATE_BEFORE = "is_relative_date_before"
    IS_RELATIVE_DATE_AFTER = "is_relative_date_after"

    @classmethod
    def lookup(cls, value: str) -> Optional["Operator"]:
        """Return the operator named by ``value``, or None if it is not supported."""
        try:
            return cls(value)
        except ValueError:
            return None


@dataclass(frozen=True)
class Inconclusive:
    """
    Marker returned when a flag can't be decided with local data.

    It is a value, not an error: every evaluation layer returns it and the
    layer above decides what to do. It refuses to be used as a boolean so
    it can never be mistaken for a definite ``False``.
    """

    reason: str

    def __bool__(self) -> bool:
        raise TypeError(f"Inconclusive match has no truth value: {self.reason}")

    def raise_error(self) -> None:
        """Raise the exception form of this marker."""
        raise InconclusiveMatchError(self.reason)


FlagValue = Union[bool, str]
"""``False`` when off, ``True`` when on without a variant, otherwise the variant key."""


@dataclass(frozen=True)
class PropertyCondition:
    """A single ``key operator value`` test against the subject's properties."""

    key: str
    value: Any = None
    operator: str = Operator.EXACT
    type: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "PropertyCondition":
        if not isinstance(data, Mapping):
            raise MalformedFlagError(f"Property condition must be an object, got {type(data).__name__}")
        key = data.get("key")
        if not isinstance(key, str):
            raise MalformedFlagError("Property condition requires a string 'key'")
        return cls(
            key=key,
            value=data.get("value"),
            operator=data.get("operator") or Operator.EXACT,
            type=data.get("type"),
        )

    def to_dict(self) -> Dict[str, Any]:
        result = {
            "key": self.key,
            "value": self.value,
            "operator": getattr(self.operator, "value", self.operator),
        }
        if self.type is not None:
            result["type"] = self.type
        return result


@dataclass(frozen=True)
class ConditionGroup:
    """One alternative rule set of a flag: a property conjunction plus an optional rollout."""

    properties: List[PropertyCondition] = field(default_factory=list)
    rollout_percentage: Optional[float] = None
    variant: Optional[str] = None

    @property
    def has_variant_override(self) -> bool:
        return self.variant is not None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ConditionGroup":
        if not isinstance(data, Mapping):
            raise MalformedFlagError(f"Condition group must be an object, got {type(data).__name__}")
        properties = data.get("properties") or []
        if not isinstance(properties, list):
            raise MalformedFlagError("Condition group 'properties' must be a list")
        variant = data.get("variant")
        if variant is not None and not isinstance(variant, str):
            raise MalformedFlagError("Condition group 'variant' must be a string")
        return cls(
            properties=[PropertyCondition.from_dict(p) for p in properties],
            rollout_percentage=_parse_percentage(data.get("rollout_percentage"), allow_none=True),
            variant=variant,
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {
            "properties": [p.to_dict() for p in self.properties],
            "rollout_percentage": self.rollout_percentage,
        }
        if self.variant is not None:
            result["variant"] = self.variant
        return result


@dataclass(frozen=True)
class Variant:
    """A multivariate variant and the share of subjects it receives."""

    key: str
    rollout_percentage: float
    name: Optional[str] = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Variant":
        if not isinstance(data, Mapping) or not isinstance(data.get("key"), str):
            raise MalformedFlagError("Variant requires a string 'key'")
        return cls(
            key=data["key"],
            rollout_percentage=_parse_percentage(data.get("rollout_percentage", 0)),
            name=data.get("name"),
        )

    def to_dict(self) -> Dict[str, Any]:
        result: Dict[str, Any] = {"key": self.key, "rollout_percentage": self.rollout_percentage}
        if self.name is not None:
            result["name"] = self.name
        return result


@dataclass(frozen=True)
class MultivariateSpec:
    """Ordered variants; list order defines the cumulative bucket ranges."""

    variants: List[Variant] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "MultivariateSpec":
        if not isinstance(data, Mapping):
            raise MalformedFlagError("'multivariate' must be an object")
        variants = data.get("variants") or []
        if not isinstance(variants, list):
            raise MalformedFlagError("'multivariate.variants' must be a list")
        return cls(variants=[Variant.from_dict(v) for v in variants])


@dataclass(frozen=True)
class FlagDefinition:
    """
    A feature flag as supplied by the flag registry.

    Example:
        ```python
        flag = FlagDefinition.from_dict({
            "key": "beta",
            "filters": {
                "groups": [
                    {
                        "properties": [{"key": "plan", "operator": "exact", "value": "pro"}],
                        "rollout_percentage": 100,
                    }
                ]
            },
        })
        ```
    """

    key: str
    groups: List[ConditionGroup] = field(default_factory=list)
    multivariate: Optional[MultivariateSpec] = None
    active: bool = True
    id: Optional[int] = None
    name: Optional[str] = None

    @property
    def variants(self) -> List[Variant]:
        if self.multivariate is None:
            return []
        return self.multivariate.variants

    @property
    def variant_keys(self) -> List[str]:
        return [variant.key for variant in self.variants]

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "FlagDefinition":
        """Build a definition from its JSON shape (e.g. a flag registry response)."""
        if not isinstance(data, Mapping):
            raise MalformedFlagError(f"Flag definition must be an object, got {type(data).__name__}")
        key = data.get("key")
        if not isinstance(key, str) or not key:
            raise MalformedFlagError("Flag definition requires a non-empty string 'key'")

        try:
            filters = data.get("filters") or {}
            if not isinstance(filters, Mapping):
                raise MalformedFlagError("'filters' must be an object")
            groups = filters.get("groups") or []
            if not isinstance(groups, list):
                raise MalformedFlagError("'filters.groups' must be a list")
            multivariate = filters.get("multivariate")

            return cls(
                key=key,
                groups=[ConditionGroup.from_dict(g) for g in groups],
                multivariate=MultivariateSpec.from_dict(multivariate) if multivariate else None,
                active=bool(data.get("active", True)),
                id=data.get("id"),
                name=data.get("name"),
            )
        except MalformedFlagError as e:
            raise MalformedFlagError(f"Flag {key!r}: {e.message}", flag_key=key) from e

    def to_dict(self) -> Dict[str, Any]:
        filters: Dict[str, Any] = {"groups": [g.to_dict() for g in self.groups]}
        if self.multivariate is not None:
            filters["multivariate"] = {"variants": [v.to_dict() for v in self.variants]}
        result: Dict[str, Any] = {"key": self.key, "active": self.active, "filters": filters}
        if self.id is not None:
            result["id"] = self.id
        if self.name is not None:
            result["name"] = self.name
        return result


def _parse_percentage(value: Any, allow_none: bool = False) -> Optional[float]:
    if value is None:
        if allow_none:
            return None
        raise MalformedFlagError("'rollout_percentage' is required")
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise MalformedFlagError(f"'rollout_percentage' must be a number, got {value!r}")
    return value
