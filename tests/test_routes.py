"""HTTP-level tests for subscription and settings routes."""

from contextlib import contextmanager

import pytest
from dependency_injector import providers
from fastapi.testclient import TestClient

from core.config import Settings
from core.container import container
from main import app

from conftest import FakeResolver, FakeWarpService, TEST_UUID


@contextmanager
def overridden(settings, resolver, warp_service):
    container.settings.override(providers.Object(settings))
    container.dns_resolver.override(providers.Object(resolver))
    container.warp_service.override(providers.Object(warp_service))
    container.reset_singletons()
    try:
        yield
    finally:
        container.settings.reset_override()
        container.dns_resolver.reset_override()
        container.warp_service.reset_override()
        container.reset_singletons()


@pytest.fixture
def app_settings(tmp_path) -> Settings:
    return Settings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'routes.db'}")


@pytest.fixture
def client(app_settings, warp_accounts):
    with overridden(app_settings, FakeResolver(), FakeWarpService(warp_accounts)):
        with TestClient(app) as test_client:
            yield test_client


class TestSubscriptions:
    def test_sub(self, client):
        response = client.get(f"/sub/{TEST_UUID}")
        assert response.status_code == 200
        assert "no-store" in response.headers["cache-control"]
        assert response.headers["cdn-cache-control"] == "no-store"
        configs = response.json()
        # testserver and the speedtest host, plus best ping
        assert len(configs) == 3
        assert configs[-1]["remarks"] == "💦 Best Ping 💥"

    def test_fragsub(self, client):
        configs = client.get(f"/fragsub/{TEST_UUID}").json()
        assert [c["remarks"] for c in configs[-3:]] == [
            "💦 F - Best Ping 💥", "💦 F - Best Fragment 😎", "💦 F - WorkerLess ⭐",
        ]

    def test_warpsub(self, client):
        configs = client.get(f"/warpsub/{TEST_UUID}", params={"app": "nikang"}).json()
        assert len(configs) == 4
        assert configs[0]["remarks"] == "💦 1 - Warp Pro 🇮🇷"

    def test_warpsub_unknown_client(self, client):
        assert client.get(f"/warpsub/{TEST_UUID}", params={"app": "other"}).status_code == 422

    def test_unknown_user(self, client):
        assert client.get("/sub/not-the-uuid").status_code == 404

    def test_missing_dataset_renders_error_page(self, app_settings, warp_accounts):
        with overridden(app_settings, FakeResolver(), FakeWarpService(warp_accounts)):
            # No lifespan: the store is never opened
            response = TestClient(app).get(f"/sub/{TEST_UUID}")
        assert response.status_code == 500
        assert response.headers["content-type"].startswith("text/html")
        assert "KV Dataset is not properly set!" in response.text

    def test_dns_failure_renders_error_page(self, app_settings, warp_accounts):
        with overridden(app_settings, FakeResolver(fail=True), FakeWarpService(warp_accounts)):
            with TestClient(app) as test_client:
                response = test_client.get(f"/sub/{TEST_UUID}")
        assert response.status_code == 500
        assert "An error occurred while resolving DNS for testserver" in response.text


class TestSettingsApi:
    def test_read_and_update(self, client):
        assert client.get("/api/settings").json()["settings"]["vlessConfigs"] is True

        response = client.put("/api/settings", json={"trojanConfigs": True, "ports": [443, 2053]})
        assert response.status_code == 200
        assert response.json()["settings"]["ports"] == [443, 2053]

        configs = client.get(f"/sub/{TEST_UUID}").json()
        assert len(configs) == 2 * 2 * 2 + 1

    def test_invalid_update(self, client):
        assert client.put("/api/settings", json={"lengthMin": 0}).status_code == 422

    @pytest.mark.parametrize("ports", [{"https": 443}, ["abc"], True, None])
    def test_invalid_ports(self, client, ports):
        assert client.put("/api/settings", json={"ports": ports}).status_code == 422

    def test_single_port(self, client):
        response = client.put("/api/settings", json={"ports": 8443})
        assert response.status_code == 200
        assert response.json()["settings"]["ports"] == [8443]

    def test_reset(self, client):
        client.put("/api/settings", json={"blockAds": True})
        assert client.post("/api/settings/reset").json()["settings"]["blockAds"] is False

    def test_refresh_warp(self, client):
        assert client.post("/api/settings/warp").json() == {"success": True, "accounts": 2}

    def test_admin_token(self, tmp_path, warp_accounts):
        secured = Settings(
            database_url=f"sqlite+aiosqlite:///{tmp_path / 'secured.db'}",
            admin_token="panel-secret",
        )
        with overridden(secured, FakeResolver(), FakeWarpService(warp_accounts)):
            with TestClient(app) as test_client:
                assert test_client.get("/api/settings").status_code == 401
                assert test_client.get(
                    "/api/settings", headers={"Authorization": "Bearer wrong"}
                ).status_code == 401
                assert test_client.get(
                    "/api/settings", headers={"Authorization": "Bearer panel-secret"}
                ).status_code == 200
                # Subscription links are not behind the admin token
                assert test_client.get(f"/sub/{TEST_UUID}").status_code == 200


class TestHealth:
    def test_health(self, client):
        body = client.get("/health").json()
        assert body["status"] == "OK"
        assert body["database"] is True
