"""Tests for the FastAPI routes."""

import pytest
from fastapi.testclient import TestClient

from sqlswitch import app


@pytest.fixture(scope="module")
def client() -> TestClient:
    return TestClient(app)


class TestApiRoutes:
    """/api/v1 endpoint tests."""

    def test_root(self, client: TestClient) -> None:
        """The root endpoint reports that the API is running."""
        # When
        response = client.get("/api/v1/")

        # Then
        assert response.status_code == 200
        assert response.json() == {"message": "API is running"}

    def test_dialects(self, client: TestClient) -> None:
        """All four dialects are listed."""
        # When
        response = client.get("/api/v1/dialects")

        # Then
        assert response.status_code == 200
        assert sorted(response.json()["dialects"]) == ["mysql", "oracle", "postgresql", "tibero"]

    def test_convert(self, client: TestClient) -> None:
        """A valid request returns the converted SQL with summaries and timing."""
        # Given
        payload = {"sql": "SELECT NVL(name, 'x') FROM emp", "source_dialect": "oracle", "target_dialect": "mysql"}

        # When
        response = client.post("/api/v1/sql/convert", json=payload)

        # Then
        assert response.status_code == 200
        body = response.json()
        assert body["status"] == "success"
        assert body["converted_sql"] == "SELECT IFNULL(name, 'x') FROM emp"
        assert body["source_dialect"] == "oracle"
        assert body["target_dialect"] == "mysql"
        assert body["summary"]["applied_rule_count"] == len(body["applied_rules"])
        assert "duration_s" in body

    def test_convert_with_strict_mode(self, client: TestClient) -> None:
        """Request options reach the engine."""
        # Given
        payload = {
            "sql": "SELECT a || b FROM t",
            "source_dialect": "oracle",
            "target_dialect": "mysql",
            "options": {"strict_mode": True},
        }

        # When
        response = client.post("/api/v1/sql/convert", json=payload)

        # Then
        assert response.status_code == 200
        assert response.json()["status"] == "partial_success"

    def test_unknown_dialect_is_rejected(self, client: TestClient) -> None:
        """An unsupported dialect name is a 400."""
        # Given
        payload = {"sql": "SELECT 1", "source_dialect": "sybase", "target_dialect": "mysql"}

        # When
        response = client.post("/api/v1/sql/convert", json=payload)

        # Then
        assert response.status_code == 400
        assert "Unsupported dialect" in response.json()["error"]

    def test_missing_fields_are_rejected(self, client: TestClient) -> None:
        """sql, source_dialect and target_dialect are required."""
        # When
        response = client.post("/api/v1/sql/convert", json={"sql": "SELECT 1"})

        # Then
        assert response.status_code == 400
        assert response.json()["error"].startswith("Missing required fields")

    def test_options_must_be_an_object(self, client: TestClient) -> None:
        """A non-object options value is a 400."""
        # Given
        payload = {"sql": "SELECT 1", "source_dialect": "oracle", "target_dialect": "mysql", "options": [1]}

        # When
        response = client.post("/api/v1/sql/convert", json=payload)

        # Then
        assert response.status_code == 400
        assert response.json() == {"error": "options must be an object"}
