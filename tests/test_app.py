from __future__ import annotations

import pytest

from api import create_app
from api.config import DEV_JWT_SECRET, ProductionConfig


def test_health_endpoint(client) -> None:
    resp = client.get("/api/v1/health")

    assert resp.status_code == 200
    assert resp.get_json()["data"] == {"status": "healthy", "version": "1.0.0"}


def test_root_and_api_info(client) -> None:
    assert client.get("/").get_json()["docs"] == "/apidocs/"
    assert "trees" in client.get("/api/v1").get_json()["data"]["endpoints"]


def test_unknown_route_uses_error_envelope(client) -> None:
    resp = client.get("/api/v1/nowhere")

    assert resp.status_code == 404
    assert resp.get_json() == {"success": False, "error": "NOT_FOUND", "message": "Route /api/v1/nowhere not found"}


def test_swagger_spec_is_served(client) -> None:
    spec = client.get("/swagger.json").get_json()

    assert spec["info"]["title"] == "TreeNetra API"
    assert "/api/v1/auth/login" in spec["paths"]


def test_production_refuses_default_jwt_secret(monkeypatch) -> None:
    monkeypatch.setattr(ProductionConfig, "JWT_SECRET", DEV_JWT_SECRET)

    with pytest.raises(RuntimeError):
        create_app("production")
