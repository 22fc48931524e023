"""
Crisis API Integration Tests

Exercises the HTTP surface end to end with an in-memory store.

Running Tests:
    pytest tests/test_crisis_api.py -v
"""

import logging
from unittest.mock import AsyncMock

import pytest
from fastapi.testclient import TestClient

from crisis_engine.infra.storage import InMemoryKeyValueStore, StorageError
from crisis_engine.main import create_app


@pytest.fixture
def client():
    """Test client with lifespan run and an in-memory store."""
    app = create_app(key_value_store=InMemoryKeyValueStore())
    with TestClient(app) as test_client:
        yield test_client


def _drain(client: TestClient) -> None:
    """Wait for background event logging."""
    client.portal.call(client.app.state.crisis_service.drain)


class TestHealth:
    """Test health endpoints."""

    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["storage"] == "memory"
        assert response.json()["lexicon_version"] == "2026.10.01"

    def test_ready_with_memory_store(self, client):
        response = client.get("/health/ready")

        assert response.status_code == 200
        assert response.json()["checks"] == {"crisis_service": "ok", "storage": "memory"}

    def test_live(self, client):
        response = client.get("/health/live")

        assert response.status_code == 200
        assert response.json()["uptime_seconds"] is not None
        assert response.json()["pending_event_writes"] == 0


class TestAnalyze:
    """Test /crisis/analyze."""

    def test_critical(self, client):
        response = client.post("/crisis/analyze", json={"text": "I want to end my life tonight"})

        assert response.status_code == 200
        data = response.json()
        assert data["tier"] == "critical"
        assert data["score"] == 31
        assert data["requires_immediate"] is True

    def test_empty_text_is_none(self, client):
        response = client.post("/crisis/analyze", json={"text": ""})

        assert response.status_code == 200
        assert response.json()["tier"] == "none"

    def test_analyze_does_not_log(self, client):
        client.post("/crisis/analyze", json={"text": "kill myself"})
        _drain(client)

        assert client.get("/crisis/history").json() == []

    def test_missing_text_is_validation_error(self, client):
        response = client.post("/crisis/analyze", json={})

        assert response.status_code == 422
        assert response.json()["error"] == "Validation error"


class TestIntervention:
    """Test /crisis/intervention."""

    def test_critical_intervention(self, client):
        response = client.post(
            "/crisis/intervention",
            json={
                "text": "I want to end my life tonight",
                "profile": {"id": "user-1", "demographics": {"age": 19, "lgbtq": True}},
            },
        )

        assert response.status_code == 200
        data = response.json()
        assert data["assessment"]["tier"] == "critical"
        intervention = data["intervention"]
        assert intervention["resources"][0]["id"] == "trevor_project"
        assert [a["target"] for a in intervention["actions"]] == [
            "tel:988",
            "sms:741741?body=HOME",
            "tel:911",
        ]

    def test_no_intervention_for_benign_text(self, client):
        response = client.post("/crisis/intervention", json={"text": "I had a good therapy session today"})

        assert response.status_code == 200
        assert response.json()["assessment"]["tier"] == "none"
        assert response.json()["intervention"] is None

    def test_intervention_is_logged(self, client):
        client.post("/crisis/intervention", json={"text": "I feel hopeless"})
        _drain(client)

        history = client.get("/crisis/history").json()

        assert len(history) == 1
        assert history[0]["tier"] == "low"
        assert history[0]["user_id"] == "anonymous"


class TestActionsAndStatistics:
    """Test action reporting and statistics."""

    def test_report_action(self, client):
        response = client.post("/crisis/actions", json={"type": "call", "target": "988"})

        assert response.status_code == 201
        assert response.json()["successful"] is True

    def test_statistics(self, client):
        client.post("/crisis/intervention", json={"text": "kill myself"})
        _drain(client)
        client.post("/crisis/actions", json={"type": "call", "target": "988"})

        response = client.get("/crisis/statistics")

        assert response.status_code == 200
        data = response.json()
        assert data["total_crisis_events"] == 1
        assert data["total_emergency_actions"] == 1
        assert data["risk_level_distribution"]["critical"] == 1
        assert data["response_rate"] == 1.0

    def test_statistics_empty(self, client):
        data = client.get("/crisis/statistics").json()

        assert data["total_crisis_events"] == 0
        assert data["response_rate"] == 1.0

    def test_provider_report(self, client):
        assert client.get("/crisis/provider-report").status_code == 404

        client.post("/crisis/intervention", json={"text": "kill myself", "profile": {"id": "user-3"}})
        _drain(client)
        response = client.get("/crisis/provider-report")

        assert response.status_code == 200
        assert response.json()["risk_assessment"]["current_risk"] == "critical"
        assert "user_id" not in response.json()["crisis_events"][0]

    def test_follow_up(self, client):
        response = client.post("/crisis/follow-ups", json={"provider": "dr_lee"})

        assert response.status_code == 201
        assert response.json()["provider"] == "dr_lee"
        assert response.json()["type"] == "crisis_followup"


class TestResources:
    """Test resource endpoints."""

    def test_emergency_default(self, client):
        data = client.get("/crisis/resources/emergency").json()

        assert len(data) == 5
        assert data[0]["contact"] == "988"

    def test_emergency_veteran(self, client):
        data = client.get("/crisis/resources/emergency", params={"veteran": "true"}).json()

        assert data[0]["id"] == "veterans_crisis_line"

    def test_support(self, client):
        data = client.get("/crisis/resources/support").json()

        assert [r["id"] for r in data] == ["samhsa_helpline", "warm_line", "online_chat"]


class TestSafetyPlan:
    """Test safety plan endpoints."""

    def test_missing_plan(self, client, caplog):
        with caplog.at_level(logging.INFO, logger="crisis_engine.api.routes.safety_plan"):
            assert client.get("/safety-plan").status_code == 404

        assert "none is stored" in caplog.text

    def test_create_and_update(self, client):
        created = client.post("/safety-plan", json={"coping_strategies": ["Walk"]})

        assert created.status_code == 201
        assert created.json()["version"] == 1
        assert len(created.json()["emergency_contacts"]) == 2

        updated = client.patch("/safety-plan", json={"social_supports": ["Alex"]})

        assert updated.status_code == 200
        assert updated.json()["version"] == 2
        assert updated.json()["coping_strategies"] == ["Walk"]

        fetched = client.get("/safety-plan").json()
        assert fetched["social_supports"] == ["Alex"]
        assert fetched["version"] == 2


class TestStorageOutage:
    """Test 503 responses when the store is down."""

    @pytest.fixture
    def failing_client(self):
        store = AsyncMock()
        store.get = AsyncMock(side_effect=StorageError("connection refused"))
        store.set = AsyncMock(side_effect=StorageError("connection refused"))
        app = create_app(key_value_store=store)
        with TestClient(app) as test_client:
            yield test_client

    def test_statistics_unavailable_is_logged(self, failing_client, caplog):
        with caplog.at_level(logging.ERROR, logger="crisis_engine.api.routes.crisis"):
            response = failing_client.get("/crisis/statistics")

        assert response.status_code == 503
        assert "Crisis statistics unavailable" in caplog.text

    def test_action_not_recorded_is_logged(self, failing_client, caplog):
        with caplog.at_level(logging.ERROR, logger="crisis_engine.api.routes.crisis"):
            response = failing_client.post("/crisis/actions", json={"type": "call", "target": "988"})

        assert response.status_code == 503
        assert "Emergency action not recorded: type=call" in caplog.text

    def test_follow_up_not_scheduled_is_logged(self, failing_client, caplog):
        with caplog.at_level(logging.ERROR, logger="crisis_engine.api.routes.crisis"):
            response = failing_client.post("/crisis/follow-ups", json={"provider": "dr_lee"})

        assert response.status_code == 503
        assert "Follow-up not scheduled: provider=dr_lee" in caplog.text
