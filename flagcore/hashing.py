"""
Deterministic bucketing of distinct ids.

The digest algorithm and scale are part of the matching protocol: every
implementation must bucket the same id identically, so neither is
configurable.
"""

import hashlib

LONG_SCALE = float(0xFFFFFFFFFFFFFFF)

ROLLOUT_SALT = ""
VARIANT_SALT = "variant"


def bucket_hash(key: str, distinct_id: str, salt: str = "") -> float:
    """
    Map (key, distinct_id, salt) to a number in [0, 1).

    Uses SHA-1 of ``key.distinct_id<salt>`` and scales its first 15 hex
    digits (60 bits) by 2^60 - 1, so the same subject always lands in the
    same bucket for a given flag.
    """
    hash_key = f"{key}.{distinct_id}{salt}"
    hash_val = int(hashlib.sha1(hash_key.encode("utf-8")).hexdigest()[:15], 16)
    return hash_val / LONG_SCALE
