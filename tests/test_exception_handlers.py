"""
공통 에러 응답 형식과 헬스 체크 테스트
"""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.exc import OperationalError

from carbontrack.config import settings
from carbontrack.services.product_service import ProductService


@pytest.fixture
def failing_client(app, monkeypatch):
    def explode(self):
        raise RuntimeError("categories exploded")

    monkeypatch.setattr(ProductService, "get_categories", explode)
    return TestClient(app, raise_server_exceptions=False)


class TestErrorBody:
    def test_unexpected_error_includes_debug_outside_production(self, failing_client):
        response = failing_client.get(
            "/api/v1/products/categories", headers={"X-Request-ID": "err-1"}
        )

        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["code"] == "INTERNAL_001"
        assert body["request_id"] == "err-1"
        assert body["debug"] == {"exception": "RuntimeError", "message": "categories exploded"}

    def test_production_hides_internal_details(self, failing_client, monkeypatch):
        monkeypatch.setattr(settings, "ENVIRONMENT", "production")

        response = failing_client.get("/api/v1/products/categories")

        body = response.json()
        assert response.status_code == 500
        assert body["error"] == "Internal server error"
        assert "debug" not in body
        assert "categories exploded" not in response.text

    def test_database_error_is_500(self, app, monkeypatch):
        def broken(self):
            raise OperationalError("SELECT 1", {}, Exception("db gone"))

        monkeypatch.setattr(ProductService, "get_categories", broken)
        client = TestClient(app, raise_server_exceptions=False)

        response = client.get("/api/v1/products/categories")

        assert response.status_code == 500
        assert response.json()["code"] == "INTERNAL_001"

    def test_request_validation_error_shape(self, client):
        response = client.get("/api/v1/products", params={"page": 0})

        assert response.status_code == 422
        body = response.json()
        assert body["code"] == "VALIDATION_001"
        assert body["details"]["errors"][0]["loc"] == ["query", "page"]


class TestHealth:
    def test_health_ok(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["database"] == "ok"
        assert data["version"] == settings.APP_VERSION
