from __future__ import annotations

from contextlib import asynccontextmanager
from datetime import datetime, timezone
from types import SimpleNamespace
from uuid import uuid4

import pytest

from app.tenancy import service as tenant_service
from app.tenancy.errors import (
    TenantNotFoundError,
    TenantSettingsInvalidError,
    TenantSubdomainTakenError,
)
from app.tenancy.service import TenantService
from app.tenancy.types import TenantSettingsUpdate

TENANT_ID = uuid4()


class _FakeSession:
    async def flush(self) -> None:
        return None


def _tenant(**overrides: object) -> SimpleNamespace:
    values: dict[str, object] = {
        "id": TENANT_ID,
        "slug": "acme",
        "subdomain": None,
        "name": "Acme",
        "logo_url": None,
        "website_url": None,
        "theme": None,
        "active": True,
        "created_at": datetime(2026, 1, 1, tzinfo=timezone.utc),
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def _install(monkeypatch, tenant: SimpleNamespace | None, *, subdomain_owner=None) -> None:
    @asynccontextmanager
    async def _fake_tenant_session(tenant_id):
        assert tenant_id == TENANT_ID
        yield _FakeSession()

    async def _fake_get_for_update(session, tenant_id):
        del session, tenant_id
        return tenant

    async def _fake_owner(session, subdomain):
        del session, subdomain
        return subdomain_owner

    monkeypatch.setattr(tenant_service, "tenant_session", _fake_tenant_session)
    monkeypatch.setattr(tenant_service.TenantsRepo, "get_by_id_for_update", _fake_get_for_update)
    monkeypatch.setattr(tenant_service.TenantsRepo, "get_id_by_subdomain", _fake_owner)


@pytest.mark.asyncio
async def test_update_settings_applies_fields(monkeypatch) -> None:
    tenant = _tenant()
    _install(monkeypatch, tenant)

    result = await TenantService.update_tenant_settings(
        TENANT_ID,
        TenantSettingsUpdate(
            name="  Acme Coffee ",
            logo_url=" https://cdn.example.com/logo.png ",
            website_url="",
            active=False,
            subdomain=" Acme-Coffee ",
        ),
    )

    assert result.ok is True
    assert result.data is not None
    assert result.data.name == "Acme Coffee"
    assert result.data.logo_url == "https://cdn.example.com/logo.png"
    assert result.data.website_url is None
    assert result.data.active is False
    assert result.data.subdomain == "acme-coffee"


@pytest.mark.asyncio
async def test_update_settings_rejects_reserved_and_malformed_subdomains(monkeypatch) -> None:
    _install(monkeypatch, _tenant())

    reserved = await TenantService.update_tenant_settings(
        TENANT_ID, TenantSettingsUpdate(subdomain="admin")
    )
    malformed = await TenantService.update_tenant_settings(
        TENANT_ID, TenantSettingsUpdate(subdomain="acme_coffee")
    )

    assert isinstance(reserved.error, TenantSettingsInvalidError)
    assert isinstance(malformed.error, TenantSettingsInvalidError)


@pytest.mark.asyncio
async def test_update_settings_rejects_subdomain_owned_by_other_tenant(monkeypatch) -> None:
    _install(monkeypatch, _tenant(), subdomain_owner=uuid4())

    result = await TenantService.update_tenant_settings(
        TENANT_ID, TenantSettingsUpdate(subdomain="shop")
    )

    assert isinstance(result.error, TenantSubdomainTakenError)


@pytest.mark.asyncio
async def test_update_settings_keeps_own_subdomain_and_can_clear_it(monkeypatch) -> None:
    tenant = _tenant(subdomain="shop")
    _install(monkeypatch, tenant, subdomain_owner=TENANT_ID)

    kept = await TenantService.update_tenant_settings(
        TENANT_ID, TenantSettingsUpdate(subdomain="shop")
    )
    cleared = await TenantService.update_tenant_settings(
        TENANT_ID, TenantSettingsUpdate(subdomain="other", clear_subdomain=True)
    )

    assert kept.data is not None and kept.data.subdomain == "shop"
    assert cleared.data is not None and cleared.data.subdomain is None


@pytest.mark.asyncio
async def test_update_settings_rejects_blank_name_and_unknown_tenant(monkeypatch) -> None:
    _install(monkeypatch, _tenant())
    blank = await TenantService.update_tenant_settings(TENANT_ID, TenantSettingsUpdate(name="  "))
    assert isinstance(blank.error, TenantSettingsInvalidError)

    _install(monkeypatch, None)
    missing = await TenantService.update_tenant_settings(TENANT_ID, TenantSettingsUpdate())
    assert isinstance(missing.error, TenantNotFoundError)
