# Overview: Pytest coverage for health and version endpoints.

from tubex.routes.system import API_VERSION


class TestHealth:
    """GET /api/v1/health"""

    def test_healthy(self, client, db_session, supplier_admin):
        response = client.get('/api/v1/health')
        assert response.status_code == 200
        assert response.json["status"] == "healthy"
        assert response.json["timestamp"].endswith("Z")

        checks = response.json["checks"]
        assert set(checks) == {"database", "document_store", "session_service"}
        assert checks["database"]["details"] == {"companies": 1, "users": 1}


class TestVersion:
    """GET /api/v1/version"""

    def test_version(self, client, db_session):
        response = client.get('/api/v1/version')
        assert response.status_code == 200
        assert response.json["api_version"] == API_VERSION == "1.0.0"
        assert "python_version" in response.json
