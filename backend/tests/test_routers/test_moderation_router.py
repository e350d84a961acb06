"""Tests for the moderation test endpoint, prompt templates and health."""

from fastapi.testclient import TestClient

from conftest import violation
from models.exceptions import ClassifierUnavailableException
from services.classifier import ClassifierVerdict

MESSAGE = {
    "user_id": "42",
    "username": "offender",
    "content": "you are all idiots",
    "context": [{"author": "alice", "content": "gg"}],
    "channel_id": "9",
}


class TestModerationTestEndpoint:
    """Tests for POST /api/moderation/test."""

    def test_violation_flow(
        self, client: TestClient, levels, punishment_rules, fake_classifier, executor
    ) -> None:
        fake_classifier.script = [violation("red", "Insulting the channel")]

        response = client.post("/api/moderation/test", json=MESSAGE)

        assert response.status_code == 200
        data = response.json()
        assert data["violation"] is True
        assert data["level_applied"] == "red"
        assert data["delete_message"] is True
        assert data["points_added"] == 5
        assert data["new_total"] == 5
        assert data["punishment_applied"] == "mute"
        assert data["punishment_executed"] is True
        assert fake_classifier.calls == [
            ("you are all idiots", [{"author": "alice", "content": "gg"}])
        ]

    def test_clean_message(self, client: TestClient, levels, fake_classifier) -> None:
        fake_classifier.script = [ClassifierVerdict.clean()]

        data = client.post("/api/moderation/test", json=MESSAGE).json()

        assert data["violation"] is False
        assert data["classification_status"] == "clean"

    def test_classifier_down(self, client: TestClient, levels, fake_classifier) -> None:
        """Test that an unavailable classifier lets the message through."""
        fake_classifier.script = [ClassifierUnavailableException("down")]

        response = client.post("/api/moderation/test", json=MESSAGE)

        assert response.status_code == 200
        assert response.json()["classification_status"] == "exhausted"

    def test_empty_content_rejected(self, client: TestClient) -> None:
        response = client.post("/api/moderation/test", json={**MESSAGE, "content": ""})
        assert response.status_code == 422

    def test_correlation_id_echoed(self, client: TestClient, levels) -> None:
        response = client.post(
            "/api/moderation/test",
            json=MESSAGE,
            headers={"X-Correlation-ID": "abc-123"},
        )
        assert response.headers["X-Correlation-ID"] == "abc-123"


class TestPromptTemplateEndpoints:
    """Tests for /api/prompt-templates."""

    def test_create_and_activate(self, client: TestClient) -> None:
        first = client.post(
            "/api/prompt-templates",
            json={"name": "v1", "system_prompt": "{{RULES_LIST}}", "is_active": True},
        )
        assert first.status_code == 201
        second = client.post(
            "/api/prompt-templates",
            json={"name": "v2", "system_prompt": "Strict {{RULES_LIST}}"},
        ).json()

        response = client.post(f"/api/prompt-templates/{second['id']}/activate")

        assert response.status_code == 200
        assert client.get("/api/prompt-templates/active").json()["id"] == second["id"]

    def test_no_active_template(self, client: TestClient) -> None:
        """Test that a missing active prompt is reported as a configuration error."""
        response = client.get("/api/prompt-templates/active")
        assert response.status_code == 503

    def test_update_records_history(self, client: TestClient, active_prompt) -> None:
        response = client.put(
            f"/api/prompt-templates/{active_prompt.id}",
            json={"system_prompt": "New {{RULES_LIST}}", "reason": "Clearer wording"},
        )
        assert response.status_code == 200

        history = client.get(f"/api/prompt-templates/{active_prompt.id}/history").json()
        assert [entry["reason"] for entry in history] == ["Clearer wording"]

    def test_update_requires_reason(self, client: TestClient, active_prompt) -> None:
        response = client.put(
            f"/api/prompt-templates/{active_prompt.id}",
            json={"system_prompt": "New"},
        )
        assert response.status_code == 422


class TestHealth:
    def test_health(self, client: TestClient) -> None:
        response = client.get("/api/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "ok"
        assert data["scheduler"]["running"] is False

    def test_root(self, client: TestClient) -> None:
        assert client.get("/").json() == {"message": "Moderation Ledger API"}
