"""Tests for the conformance test service."""

import pytest
from fastapi.testclient import TestClient

from flagcore.hashing import bucket_hash
from test_service.main import app

BETA_FLAG = {
    "key": "beta",
    "filters": {
        "groups": [
            {
                "properties": [{"key": "plan", "operator": "exact", "value": "pro"}],
                "rollout_percentage": 100,
            }
        ]
    },
}


@pytest.fixture
def client():
    return TestClient(app)


def send(client, **cmd):
    response = client.post("/", json=cmd)
    assert response.status_code == 200
    return response.json()


class TestLifecycle:
    def test_health_check(self, client):
        response = client.get("/")
        assert response.status_code == 200
        assert response.json() == {"success": True}

    def test_cleanup(self, client):
        response = client.delete("/")
        assert response.json() == {"success": True}

    def test_invalid_body(self, client):
        response = client.post("/", content="not json", headers={"Content-Type": "application/json"})
        assert response.status_code == 400
        assert response.json()["error"] == "ParseError"

    def test_unknown_command(self, client):
        result = send(client, command="reset")
        assert result["error"] == "UnknownCommand"
        assert "reset" in result["message"]


class TestEvaluateCommand:
    def test_match(self, client):
        result = send(client, command="evaluate", flag=BETA_FLAG, distinctId="user-1", properties={"plan": "pro"})

        assert result == {
            "value": True,
            "inconclusive": False,
            "reason": {"kind": "CONDITION_MATCH", "conditionIndex": 0, "variantOverride": False},
        }

    def test_no_match(self, client):
        result = send(client, command="evaluate", flag=BETA_FLAG, distinctId="user-1", properties={"plan": "free"})

        assert result["value"] is False
        assert result["reason"]["kind"] == "NO_CONDITION_MATCH"

    def test_inconclusive(self, client):
        result = send(client, command="evaluate", flag=BETA_FLAG, distinctId="user-1", properties={})

        assert "value" not in result
        assert result["inconclusive"] is True
        assert result["reason"]["kind"] == "INCONCLUSIVE"

    def test_missing_flag(self, client):
        result = send(client, command="evaluate", distinctId="user-1")
        assert result["error"] == "ValidationError"

    def test_malformed_flag(self, client):
        result = send(client, command="evaluate", flag={"key": "broken", "filters": {"groups": "nope"}})

        assert result["error"] == "MalformedFlagError"
        assert "broken" in result["message"]


class TestMatchPropertyCommand:
    def test_match(self, client):
        condition = {"key": "plan", "operator": "exact", "value": ["pro", "team"]}
        result = send(client, command="matchProperty", condition=condition, properties={"plan": "TEAM"})
        assert result == {"value": True, "inconclusive": False}

    def test_missing_property(self, client):
        condition = {"key": "plan", "value": "pro"}
        result = send(client, command="matchProperty", condition=condition, properties={})

        assert result["inconclusive"] is True
        assert "plan" in result["message"]

    def test_missing_condition(self, client):
        result = send(client, command="matchProperty", properties={})
        assert result["error"] == "ValidationError"


class TestHashCommand:
    def test_hash(self, client):
        result = send(client, command="hash", key="beta", distinctId="user-1")
        assert result["hash"] == pytest.approx(bucket_hash("beta", "user-1"))

    def test_salt(self, client):
        result = send(client, command="hash", key="beta", distinctId="user-1", salt="variant")
        assert result["hash"] == pytest.approx(bucket_hash("beta", "user-1", "variant"))

    def test_missing_arguments(self, client):
        result = send(client, command="hash", key="beta")
        assert result["error"] == "ValidationError"


class TestEvaluateAllCommand:
    def test_evaluate_all(self, client):
        flags = [
            BETA_FLAG,
            {"key": "everyone", "filters": {"groups": [{"rollout_percentage": 100}]}},
            {"key": "broken", "filters": {"groups": "nope"}},
        ]
        result = send(client, command="evaluateAll", flags=flags, distinctId="user-1", properties={})

        assert result["flags"] == {"everyone": True}
        assert result["fallbackKeys"] == ["beta", "broken"]

    def test_flags_must_be_list(self, client):
        result = send(client, command="evaluateAll", flags={"beta": BETA_FLAG})
        assert result["error"] == "ValidationError"
