"""Multivariate variant selection."""

from dataclasses import dataclass
from typing import List, Optional

from flagcore.hashing import VARIANT_SALT, bucket_hash
from flagcore.models import FlagDefinition


@dataclass(frozen=True)
class VariantRange:
    """The half-open bucket range ``[value_min, value_max)`` owned by a variant."""

    key: str
    value_min: float
    value_max: float

    def contains(self, value: float) -> bool:
        return self.value_min <= value < self.value_max


def variant_lookup_table(flag: FlagDefinition) -> List[VariantRange]:
    """
    Build contiguous bucket ranges from the flag's variants, in declaration order.

    Percentages need not add up to 100; buckets past the total belong to no variant.
    """
    lookup_table = []
    value_min = 0.0
    for variant in flag.variants:
        value_max = value_min + variant.rollout_percentage / 100
        lookup_table.append(VariantRange(key=variant.key, value_min=value_min, value_max=value_max))
        value_min = value_max
    return lookup_table


def get_matching_variant(flag: FlagDefinition, distinct_id: str) -> Optional[str]:
    """Return the variant key the subject is bucketed into, or None."""
    value = bucket_hash(flag.key, distinct_id, VARIANT_SALT)
    for variant_range in variant_lookup_table(flag):
        if variant_range.contains(value):
            return variant_range.key
    return None
