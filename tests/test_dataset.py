"""Tests for the key-value backed settings dataset."""

import asyncio

import pytest

from core.config import Settings
from core.database import Database
from models.settings import ProxySettings
from services.dataset import DatasetService, remote_dns_host
from services.xray.exceptions import DatasetNotFoundError

from conftest import FakeWarpService


@pytest.fixture
def db_settings(tmp_path) -> Settings:
    return Settings(database_url=f"sqlite+aiosqlite:///{tmp_path / 'dataset.db'}")


def run_with_dataset(db_settings, resolver, warp_service, scenario):
    async def _run():
        database = Database(db_settings)
        await database.startup()
        try:
            return await scenario(DatasetService(database, resolver, warp_service))
        finally:
            await database.shutdown()
    return asyncio.run(_run())


class TestKeyValueStore:
    def test_set_get_replace(self, db_settings):
        async def scenario():
            database = Database(db_settings)
            await database.startup()
            try:
                assert await database.get_kv("missing") is None
                assert await database.set_kv("warpConfigs", [{"privateKey": "a"}])
                assert await database.set_kv("warpConfigs", [{"privateKey": "b"}])
                return await database.get_kv("warpConfigs"), await database.get_kv("proxySettings")
            finally:
                await database.shutdown()

        stored, other = asyncio.run(scenario())
        assert stored == [{"privateKey": "b"}]
        assert other is None


class TestRemoteDnsHost:
    def test_doh_url(self):
        assert remote_dns_host("https://dns.google/dns-query") == "dns.google"

    def test_plain_address(self):
        assert remote_dns_host("8.8.8.8") == "8.8.8.8"
        assert remote_dns_host("tcp://1.1.1.1:53") == "1.1.1.1"


class TestProxySettings:
    def test_defaults_stored_on_first_read(self, db_settings, resolver, warp_accounts):
        async def scenario(dataset):
            first = await dataset.get_proxy_settings()
            second = await dataset.get_proxy_settings()
            return first, second

        first, second = run_with_dataset(db_settings, resolver, FakeWarpService(warp_accounts), scenario)
        assert first == second == ProxySettings()

    def test_update_merges_and_pins_remote_dns(self, db_settings, resolver, warp_accounts):
        async def scenario(dataset):
            await dataset.update_proxy_settings({
                "remoteDNS": "https://edge.example.com/dns-query",
                "enableIPv6": False,
                "ports": "443,8443",
            })
            return await dataset.get_proxy_settings()

        stored = run_with_dataset(db_settings, resolver, FakeWarpService(warp_accounts), scenario)
        assert stored.remote_dns == "https://edge.example.com/dns-query"
        assert stored.ports == [443, 8443]
        assert stored.vless_configs is True
        assert stored.resolved_remote_dns.server == "edge.example.com"
        assert stored.resolved_remote_dns.static_ips == ["104.16.1.1", "104.16.1.2"]

    def test_ip_remote_dns_is_not_resolved(self, db_settings, resolver, warp_accounts):
        async def scenario(dataset):
            return await dataset.update_proxy_settings({"remoteDNS": "https://1.1.1.1/dns-query"})

        updated = run_with_dataset(db_settings, resolver, FakeWarpService(warp_accounts), scenario)
        assert updated.resolved_remote_dns.server is None
        assert resolver.calls == []

    def test_reset(self, db_settings, resolver, warp_accounts):
        async def scenario(dataset):
            await dataset.update_proxy_settings({"trojanConfigs": True})
            await dataset.reset_proxy_settings()
            return await dataset.get_proxy_settings()

        stored = run_with_dataset(db_settings, resolver, FakeWarpService(warp_accounts), scenario)
        assert stored.trojan_configs is False

    def test_clear_chain_proxy(self, db_settings, resolver, warp_accounts):
        async def scenario(dataset):
            ps = await dataset.update_proxy_settings({"outProxy": "socks://x", "outProxyParams": "{bad"})
            await dataset.clear_chain_proxy(ps)
            return await dataset.get_proxy_settings()

        stored = run_with_dataset(db_settings, resolver, FakeWarpService(warp_accounts), scenario)
        assert stored.out_proxy == ""
        assert stored.out_proxy_params == ""

    def test_unavailable_store(self, db_settings, resolver, warp_accounts):
        dataset = DatasetService(Database(db_settings), resolver, FakeWarpService(warp_accounts))
        with pytest.raises(DatasetNotFoundError, match="KV Dataset is not properly set!"):
            asyncio.run(dataset.get_proxy_settings())


class TestWarpAccounts:
    def test_registered_once_then_read_back(self, db_settings, resolver, warp_accounts):
        warp_service = FakeWarpService(warp_accounts)

        async def scenario(dataset):
            first = await dataset.get_warp_accounts()
            second = await dataset.get_warp_accounts()
            return first, second

        first, second = run_with_dataset(db_settings, resolver, warp_service, scenario)
        assert warp_service.registrations == 1
        assert [a.private_key for a in second] == [a.private_key for a in warp_accounts]
        assert second[1].account.config.client_id == "BAUG"
        assert first == second

    def test_refresh(self, db_settings, resolver, warp_accounts):
        warp_service = FakeWarpService(warp_accounts)

        async def scenario(dataset):
            await dataset.get_warp_accounts()
            return await dataset.refresh_warp_accounts()

        accounts = run_with_dataset(db_settings, resolver, warp_service, scenario)
        assert warp_service.registrations == 2
        assert len(accounts) == 2
