"""Tests for flag definition parsing."""

import pytest

from flagcore.errors import ErrorCategory, InconclusiveMatchError, MalformedFlagError
from flagcore.models import (
    ConditionGroup,
    FlagDefinition,
    Inconclusive,
    Operator,
    PropertyCondition,
)


@pytest.fixture
def flag_data():
    """A multivariate flag in its JSON shape."""
    return {
        "id": 1,
        "name": "Beta Feature",
        "key": "beta-feature",
        "active": True,
        "filters": {
            "groups": [
                {
                    "properties": [
                        {"key": "email", "type": "person", "value": "test@example.com", "operator": "exact"}
                    ],
                    "rollout_percentage": 100,
                    "variant": "second-variant",
                },
                {"rollout_percentage": 50},
            ],
            "multivariate": {
                "variants": [
                    {"key": "first-variant", "name": "First Variant", "rollout_percentage": 50},
                    {"key": "second-variant", "name": "Second Variant", "rollout_percentage": 50},
                ]
            },
        },
    }


class TestFlagDefinitionFromDict:
    """Tests for FlagDefinition.from_dict."""

    def test_full_definition(self, flag_data):
        flag = FlagDefinition.from_dict(flag_data)

        assert flag.key == "beta-feature"
        assert flag.id == 1
        assert flag.active is True
        assert len(flag.groups) == 2
        assert flag.groups[0].variant == "second-variant"
        assert flag.groups[0].properties[0] == PropertyCondition(
            key="email", value="test@example.com", operator="exact", type="person"
        )
        assert flag.groups[1].properties == []
        assert flag.groups[1].rollout_percentage == 50
        assert flag.variant_keys == ["first-variant", "second-variant"]

    def test_minimal_definition(self):
        flag = FlagDefinition.from_dict({"key": "simple"})

        assert flag.groups == []
        assert flag.multivariate is None
        assert flag.variants == []
        assert flag.active is True

    def test_null_sections(self):
        flag = FlagDefinition.from_dict(
            {"key": "simple", "filters": {"groups": [{"properties": None, "rollout_percentage": None}]}}
        )
        assert flag.groups == [ConditionGroup()]

    def test_operator_defaults_to_exact(self):
        condition = PropertyCondition.from_dict({"key": "plan", "value": "pro"})
        assert condition.operator == Operator.EXACT

    def test_unknown_operator_is_preserved(self):
        condition = PropertyCondition.from_dict({"key": "plan", "value": "pro", "operator": "is_unknown"})
        assert condition.operator == "is_unknown"

    def test_to_dict(self, flag_data):
        rendered = FlagDefinition.from_dict(flag_data).to_dict()

        assert rendered["key"] == "beta-feature"
        assert rendered["filters"]["groups"][0]["variant"] == "second-variant"
        assert rendered["filters"]["groups"][0]["properties"][0]["operator"] == "exact"
        assert rendered["filters"]["multivariate"]["variants"][1]["rollout_percentage"] == 50
        assert FlagDefinition.from_dict(rendered) == FlagDefinition.from_dict(flag_data)


class TestMalformedDefinitions:
    """Tests for structural validation."""

    @pytest.mark.parametrize(
        "data",
        [
            None,
            [],
            {},
            {"key": ""},
            {"key": 5},
        ],
    )
    def test_invalid_key(self, data):
        with pytest.raises(MalformedFlagError):
            FlagDefinition.from_dict(data)

    @pytest.mark.parametrize(
        "filters",
        [
            "groups",
            {"groups": {"properties": []}},
            {"groups": [{"properties": "plan"}]},
            {"groups": [{"properties": [{"value": "pro"}]}]},
            {"groups": [{"rollout_percentage": "50"}]},
            {"groups": [{"rollout_percentage": True}]},
            {"groups": [{"variant": 3}]},
            {"multivariate": {"variants": [{"rollout_percentage": 50}]}},
            {"multivariate": {"variants": "control"}},
        ],
    )
    def test_invalid_filters(self, filters):
        with pytest.raises(MalformedFlagError) as exc_info:
            FlagDefinition.from_dict({"key": "broken", "filters": filters})

        assert exc_info.value.flag_key == "broken"
        assert exc_info.value.category == ErrorCategory.VALIDATION
        assert "broken" in exc_info.value.message


class TestInconclusive:
    """Tests for the Inconclusive marker."""

    def test_no_truth_value(self):
        with pytest.raises(TypeError):
            if Inconclusive("missing property"):
                pass

    def test_raise_error(self):
        with pytest.raises(InconclusiveMatchError) as exc_info:
            Inconclusive("missing property").raise_error()

        assert exc_info.value.message == "missing property"
        assert exc_info.value.category == ErrorCategory.INCONCLUSIVE
