"""Tests for warning level, rule and punishment rule endpoints."""

from fastapi.testclient import TestClient


class TestWarningLevelEndpoints:
    """Tests for /api/warning-levels."""

    def test_list_levels_with_rules(self, client: TestClient, levels) -> None:
        client.post(
            f"/api/warning-levels/{levels['red'].id}/rules",
            json={"name": "No threats", "description": "Never threaten members"},
        )

        response = client.get("/api/warning-levels")

        assert response.status_code == 200
        data = response.json()
        assert [level["name"] for level in data] == ["yellow", "orange", "red"]
        assert data[2]["rules"][0]["name"] == "No threats"

    def test_create_level(self, client: TestClient) -> None:
        response = client.post(
            "/api/warning-levels",
            json={
                "name": "purple",
                "color": "#a855f7",
                "points": 2,
                "delete_message": True,
                "description": "Spam",
            },
        )

        assert response.status_code == 201
        assert response.json()["delete_message"] is True

    def test_duplicate_level_conflicts(self, client: TestClient, levels) -> None:
        """Test that level names are unique regardless of case."""
        response = client.post(
            "/api/warning-levels",
            json={"name": "RED", "color": "#000", "points": 1, "description": "x"},
        )

        assert response.status_code == 409
        assert "correlation_id" in response.json()

    def test_invalid_points_rejected(self, client: TestClient) -> None:
        response = client.post(
            "/api/warning-levels",
            json={"name": "zero", "color": "#000", "points": 0, "description": "x"},
        )

        assert response.status_code == 422

    def test_delete_level_in_use(self, client: TestClient, levels, fake_classifier) -> None:
        """Test that a level referenced by warnings cannot be deleted."""
        from conftest import violation

        fake_classifier.script = [violation("yellow")]
        client.post(
            "/api/moderation/test",
            json={"user_id": "1", "username": "u", "content": "spam"},
        )

        response = client.delete(f"/api/warning-levels/{levels['yellow'].id}")

        assert response.status_code == 409

    def test_delete_missing_level(self, client: TestClient) -> None:
        assert client.delete("/api/warning-levels/999").status_code == 404


class TestRuleEndpoints:
    """Tests for rule endpoints."""

    def test_update_and_delete_rule(self, client: TestClient, levels) -> None:
        created = client.post(
            f"/api/warning-levels/{levels['orange'].id}/rules",
            json={"name": "No insults", "description": "Be civil"},
        ).json()

        response = client.put(
            f"/api/rules/{created['id']}", json={"description": "Be kind"}
        )
        assert response.status_code == 200
        assert response.json()["description"] == "Be kind"

        assert client.delete(f"/api/rules/{created['id']}").status_code == 204
        assert client.delete(f"/api/rules/{created['id']}").status_code == 404

    def test_reorder(self, client: TestClient, levels) -> None:
        level_id = levels["orange"].id
        first = client.post(
            f"/api/warning-levels/{level_id}/rules",
            json={"name": "a", "description": "a"},
        ).json()
        second = client.post(
            f"/api/warning-levels/{level_id}/rules",
            json={"name": "b", "description": "b"},
        ).json()

        response = client.put(
            f"/api/warning-levels/{level_id}/rules/reorder",
            json={
                "rules": [
                    {"id": first["id"], "order": 1},
                    {"id": second["id"], "order": 0},
                ]
            },
        )

        assert response.status_code == 200
        assert [rule["name"] for rule in response.json()] == ["b", "a"]


class TestPunishmentRuleEndpoints:
    """Tests for /api/punishment-rules."""

    def test_list_rules(self, client: TestClient, punishment_rules) -> None:
        response = client.get("/api/punishment-rules")

        assert response.status_code == 200
        assert [r["point_threshold"] for r in response.json()] == [5, 10]

    def test_create_mute_without_duration(self, client: TestClient) -> None:
        """Test that a mute rule needs a duration."""
        response = client.post(
            "/api/punishment-rules",
            json={"punishment_type": "mute", "point_threshold": 3},
        )

        assert response.status_code == 422

    def test_create_ban(self, client: TestClient) -> None:
        response = client.post(
            "/api/punishment-rules",
            json={"punishment_type": "ban", "point_threshold": 15},
        )

        assert response.status_code == 201
        data = response.json()
        assert data["punishment_type"] == "ban"
        assert data["duration"] is None

    def test_deactivate_rule(self, client: TestClient, punishment_rules) -> None:
        response = client.put(
            f"/api/punishment-rules/{punishment_rules['mute'].id}",
            json={"is_active": False},
        )

        assert response.status_code == 200
        assert response.json()["is_active"] is False

    def test_delete_rule(self, client: TestClient, punishment_rules) -> None:
        rule_id = punishment_rules["ban"].id
        assert client.delete(f"/api/punishment-rules/{rule_id}").status_code == 204
        assert client.put(
            f"/api/punishment-rules/{rule_id}", json={"is_active": True}
        ).status_code == 404
