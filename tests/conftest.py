"""
pytest configuration for the Xray config service tests.

Required credentials are exported before any application module is imported,
and in-process fakes stand in for the DoH resolver, WARP API and dataset.
"""

import os
import tempfile
from pathlib import Path
from typing import Dict, List, Optional

import pytest

TEST_UUID = "d342d11e-d424-4583-b36e-524ab1f0afa4"
TEST_TROJAN_PASSWORD = "trojan-secret"

os.environ.setdefault("UUID", TEST_UUID)
os.environ.setdefault("TR_PASS", TEST_TROJAN_PASSWORD)
os.environ.setdefault(
    "DATABASE_URL",
    f"sqlite+aiosqlite:///{Path(tempfile.mkdtemp()) / 'xraygen-test.db'}",
)
os.environ.setdefault("LOG_FORMAT", "console")
os.environ.setdefault("LOG_LEVEL", "WARNING")

from core.config import Settings  # noqa: E402
from models.settings import ProxySettings, WarpAccount  # noqa: E402
from services.dns_resolver import ResolvedAddresses  # noqa: E402
from services.xray.exceptions import DNSResolutionError  # noqa: E402


class FakeResolver:
    """Static DoH answers keyed by domain; unknown domains resolve to nothing."""

    def __init__(self, answers: Optional[Dict[str, ResolvedAddresses]] = None, fail: bool = False):
        self.answers = answers or {}
        self.fail = fail
        self.calls: List[str] = []

    async def resolve(self, domain: str) -> ResolvedAddresses:
        self.calls.append(domain)
        if self.fail:
            raise DNSResolutionError(domain, "upstream unreachable")
        return self.answers.get(domain, ResolvedAddresses())

    async def resolve_many(self, domains: List[str]) -> List[ResolvedAddresses]:
        return [await self.resolve(d) for d in domains]


class FakeDataset:
    """Dataset double returning fixed records and recording chain clears."""

    def __init__(self, proxy_settings: ProxySettings, accounts: Optional[List[WarpAccount]] = None):
        self.proxy_settings = proxy_settings
        self.accounts = accounts or []
        self.cleared: List[ProxySettings] = []

    async def get_proxy_settings(self) -> ProxySettings:
        return self.proxy_settings

    async def get_warp_accounts(self) -> List[WarpAccount]:
        return self.accounts

    async def clear_chain_proxy(self, proxy_settings: ProxySettings) -> None:
        self.cleared.append(proxy_settings)


class FakeWarpService:
    def __init__(self, accounts: List[WarpAccount]):
        self.accounts = accounts
        self.registrations = 0

    async def register_accounts(self) -> List[WarpAccount]:
        self.registrations += 1
        return list(self.accounts)


def make_warp_account(private_key: str, client_id: str, v6: str) -> WarpAccount:
    return WarpAccount.model_validate({
        "privateKey": private_key,
        "account": {
            "id": "device-id",
            "config": {
                "client_id": client_id,
                "interface": {"addresses": {"v4": "172.16.0.2", "v6": v6}},
                "peers": [{
                    "public_key": "bmXOC+F1FxEMF9dyiK2H5/1SUtzH0JuVo51h2wPfgyo=",
                    "endpoint": {"host": "engage.cloudflareclient.com:2408"},
                }],
            },
        },
    })


@pytest.fixture
def settings() -> Settings:
    return Settings()


@pytest.fixture
def proxy_settings() -> ProxySettings:
    return ProxySettings()


@pytest.fixture
def warp_accounts() -> List[WarpAccount]:
    return [
        make_warp_account("yAnz5TF+lXXJte14tji3zlMNq+hd2rYUIgJBgB3fBmk=", "AQID", "2606:4700:110:8a36::1"),
        make_warp_account("OCsuMjyYwM4ZDDfo8dIsDjKVwNSH9ZmDmWdBy8WYyFQ=", "BAUG", "2606:4700:110:8a36::2"),
    ]


@pytest.fixture
def resolver() -> FakeResolver:
    return FakeResolver({
        "edge.example.com": ResolvedAddresses(ipv4=["104.16.1.1", "104.16.1.2"], ipv6=["2606:4700::1"]),
        "cloudflare-dns.com": ResolvedAddresses(ipv4=["104.16.248.249"], ipv6=["2606:4700::6810:f8f9"]),
        "cloudflare.com": ResolvedAddresses(ipv4=["104.16.132.229"]),
        "dash.cloudflare.com": ResolvedAddresses(ipv4=["104.17.110.184"]),
    })


@pytest.fixture
def failing_resolver() -> FakeResolver:
    return FakeResolver(fail=True)
