"""Tests for the DoH and WARP HTTP clients against a mocked transport."""

import asyncio
import base64

import httpx
import pytest

from core.config import Settings
from services.dns_resolver import DNSResolver
from services.warp import WarpService
from services.xray.exceptions import DNSResolutionError, WarpRegistrationError

DOH_ANSWERS = {
    ("edge.example.com", "A"): [
        {"name": "edge.example.com", "type": 5, "data": "cdn.example.com."},
        {"name": "cdn.example.com", "type": 1, "data": "104.16.1.1"},
    ],
    ("edge.example.com", "AAAA"): [
        {"name": "edge.example.com", "type": 28, "data": "2606:4700::1"},
    ],
    ("dns.google", "A"): [
        {"name": "dns.google", "type": 1, "data": "8.8.8.8"},
        {"name": "dns.google", "type": 1, "data": "8.8.4.4"},
    ],
}


def doh_handler(requests):
    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        key = (request.url.params["name"], request.url.params["type"])
        return httpx.Response(200, json={"Status": 0, "Answer": DOH_ANSWERS.get(key, [])})
    return handler


def resolver_with(handler) -> DNSResolver:
    settings = Settings(doh_url="https://doh.example.com/dns-query")
    return DNSResolver(settings, transport=httpx.MockTransport(handler))


class TestDNSResolver:
    def test_resolves_a_and_aaaa(self):
        requests = []
        resolved = asyncio.run(resolver_with(doh_handler(requests)).resolve("edge.example.com"))

        assert resolved.ipv4 == ["104.16.1.1"]
        assert resolved.ipv6 == ["2606:4700::1"]
        assert sorted(r.url.params["type"] for r in requests) == ["A", "AAAA"]
        for request in requests:
            assert request.url.host == "doh.example.com"
            assert request.url.path == "/dns-query"
            assert request.headers["accept"] == "application/dns-json"

    def test_resolve_many_keeps_order(self):
        resolver = resolver_with(doh_handler([]))
        results = asyncio.run(resolver.resolve_many(["dns.google", "edge.example.com", "missing.example.com"]))
        assert [r.ipv4 for r in results] == [["8.8.8.8", "8.8.4.4"], ["104.16.1.1"], []]

    def test_server_error(self):
        resolver = resolver_with(lambda request: httpx.Response(503))
        with pytest.raises(DNSResolutionError) as exc_info:
            asyncio.run(resolver.resolve("edge.example.com"))
        assert exc_info.value.domain == "edge.example.com"

    @pytest.mark.parametrize("body", [
        {"content": b"<html>not json</html>"},
        {"json": ["not", "an", "object"]},
        {"json": {"Answer": [{"name": "edge.example.com", "type": 1}]}},
        {"json": {"Answer": ["104.16.1.1"]}},
    ])
    def test_malformed_body(self, body):
        resolver = resolver_with(lambda request: httpx.Response(200, **body))
        with pytest.raises(DNSResolutionError):
            asyncio.run(resolver.resolve("edge.example.com"))

    def test_transport_failure(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(DNSResolutionError):
            asyncio.run(resolver_with(handler).resolve("edge.example.com"))


def registration_body(client_id: str):
    return {
        "id": "device-id",
        "config": {
            "client_id": client_id,
            "interface": {"addresses": {"v4": "172.16.0.2", "v6": "2606:4700:110:8a36::1"}},
            "peers": [{"public_key": "bmXOC+F1FxEMF9dyiK2H5/1SUtzH0JuVo51h2wPfgyo="}],
        },
    }


def warp_service_with(handler) -> WarpService:
    settings = Settings(warp_api_url="https://warp.example.com/v0a4005/")
    return WarpService(settings, transport=httpx.MockTransport(handler))


class TestWarpService:
    def test_registers_two_accounts(self):
        requests = []

        def handler(request: httpx.Request) -> httpx.Response:
            requests.append(request)
            return httpx.Response(200, json=registration_body("AQID"))

        accounts = asyncio.run(warp_service_with(handler).register_accounts())

        assert len(accounts) == 2
        assert accounts[0].private_key != accounts[1].private_key
        assert accounts[0].account.config.client_id == "AQID"
        assert len(requests) == 2
        for request in requests:
            assert request.method == "POST"
            assert str(request.url) == "https://warp.example.com/v0a4005/reg"
            assert request.headers["cf-client-version"] == "a-6.30-3596"
        keys = {r.read() for r in requests}
        assert len(keys) == 2
        assert all(len(base64.b64decode(a.private_key)) == 32 for a in accounts)

    def test_server_error(self):
        service = warp_service_with(lambda request: httpx.Response(500, json={"success": False}))
        with pytest.raises(WarpRegistrationError):
            asyncio.run(service.register_accounts())

    def test_unexpected_body(self):
        service = warp_service_with(lambda request: httpx.Response(200, json={"result": None}))
        with pytest.raises(WarpRegistrationError):
            asyncio.run(service.register_accounts())
