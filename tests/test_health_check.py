from unittest.mock import patch

from django.db import DatabaseError


class TestHealthCheck:
    def test_health_check_returns_200(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data
        assert "services" in data

    def test_health_check_reports_database_status(self, client):
        response = client.get("/health")
        data = response.json()
        assert data["services"]["database"]["status"] == "up"
        assert "response_time_ms" in data["services"]["database"]

    def test_health_check_needs_no_identity(self, client):
        assert client.get("/health").status_code == 200

    def test_health_check_returns_503_when_database_down(self, client):
        with patch("modules.core.views.connections") as mock_connections:
            conn = mock_connections.__getitem__.return_value
            conn.ensure_connection.side_effect = DatabaseError("down")
            response = client.get("/health")
        assert response.status_code == 503
        data = response.json()
        assert data["status"] == "unhealthy"
        assert data["services"]["database"] == {"status": "down"}
