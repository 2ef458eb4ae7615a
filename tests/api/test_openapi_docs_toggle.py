from __future__ import annotations

from types import SimpleNamespace

from fastapi.testclient import TestClient

from app import main as app_main
from app.api.routes import public_tenant
from app.core.results import Result
from app.tenancy.errors import TenantNotFoundError


def _settings(*, enable_openapi_docs: bool) -> SimpleNamespace:
    return SimpleNamespace(log_level="INFO", enable_openapi_docs=enable_openapi_docs)


def test_openapi_docs_enabled(monkeypatch) -> None:
    monkeypatch.setattr(app_main, "get_settings", lambda: _settings(enable_openapi_docs=True))
    client = TestClient(app_main.create_app())

    assert client.get("/docs").status_code == 200
    assert client.get("/redoc").status_code == 200
    openapi = client.get("/openapi.json")
    assert openapi.status_code == 200
    assert "/{slug}/coupons/{offer_id}/issue" in openapi.json()["paths"]


def test_openapi_docs_disabled(monkeypatch) -> None:
    async def _missing_tenant(slug):
        return Result.fail(TenantNotFoundError(f"Tenant not found: {slug}"))

    monkeypatch.setattr(app_main, "get_settings", lambda: _settings(enable_openapi_docs=False))
    monkeypatch.setattr(public_tenant.TenantService, "get_public_tenant", _missing_tenant)
    client = TestClient(app_main.create_app())

    assert client.get("/docs").status_code == 404
    assert client.get("/openapi.json").status_code == 404
