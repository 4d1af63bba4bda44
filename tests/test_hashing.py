"""Tests for deterministic bucketing."""

from flagcore.hashing import LONG_SCALE, VARIANT_SALT, bucket_hash


class TestBucketHash:
    """Tests for bucket_hash function."""

    def test_known_values(self):
        """Hash must match the shared SHA-1 bucketing protocol exactly."""
        # First 15 hex digits of sha1("beta.user-1") = 65cf73cb742019e
        assert bucket_hash("beta", "user-1") == 0x65CF73CB742019E / LONG_SCALE
        # sha1("test-flag.user-1variant") = 90d797bb420aff5...
        assert bucket_hash("test-flag", "user-1", VARIANT_SALT) == 0x90D797BB420AFF5 / LONG_SCALE

    def test_scale_constant(self):
        """Scale is 2^60 - 1 (fifteen hex F digits)."""
        assert LONG_SCALE == float(2 ** 60 - 1)

    def test_consistent_result(self):
        """Same triple always yields the same value."""
        first = bucket_hash("test-flag", "consistent-user")
        for _ in range(100):
            assert bucket_hash("test-flag", "consistent-user") == first

    def test_salt_changes_bucket(self):
        """Rollout and variant buckets are independent."""
        assert bucket_hash("test-flag", "user-1") != bucket_hash("test-flag", "user-1", VARIANT_SALT)

    def test_range(self):
        """Values lie in [0, 1)."""
        for i in range(1000):
            value = bucket_hash("range-test", f"user-{i}")
            assert 0 <= value < 1

    def test_distribution(self):
        """Values are roughly uniform over distinct ids."""
        total = 10000
        below_half = sum(1 for i in range(total) if bucket_hash("distribution-test", f"user-{i}") < 0.5)

        percentage = below_half / total * 100
        assert 45 <= percentage <= 55, f"Distribution was {percentage}%"

        mean = sum(bucket_hash("distribution-test", f"user-{i}") for i in range(total)) / total
        assert 0.47 <= mean <= 0.53
