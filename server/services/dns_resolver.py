"""DNS-over-HTTPS resolver used for static IP pinning and address discovery."""

import asyncio
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from core.config import Settings
from core.logging import get_logger, log_dns_lookup
from services.xray.exceptions import DNSResolutionError

logger = get_logger(__name__)

# DNS RR types carried in DoH JSON answers
_TYPE_A = 1
_TYPE_AAAA = 28


@dataclass(frozen=True)
class ResolvedAddresses:
    """A and AAAA answers for one domain, in answer order."""
    ipv4: List[str] = field(default_factory=list)
    ipv6: List[str] = field(default_factory=list)

    @property
    def all(self) -> List[str]:
        return [*self.ipv4, *self.ipv6]


class DNSResolver:
    """Cloudflare-style JSON DoH client.

    A and AAAA queries are issued concurrently. Any transport or decoding
    failure surfaces as ``DNSResolutionError``; there is no retry and no
    partial result.
    """

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._url = settings.doh_url
        self._timeout = settings.doh_timeout
        self._transport = transport

    async def resolve(self, domain: str) -> ResolvedAddresses:
        headers = {"accept": "application/dns-json"}
        try:
            async with httpx.AsyncClient(timeout=self._timeout, headers=headers,
                                         transport=self._transport) as client:
                v4_resp, v6_resp = await asyncio.gather(
                    client.get(self._url, params={"name": domain, "type": "A"}),
                    client.get(self._url, params={"name": domain, "type": "AAAA"}),
                )
                v4_resp.raise_for_status()
                v6_resp.raise_for_status()
                ipv4 = _answers(v4_resp.json(), _TYPE_A)
                ipv6 = _answers(v6_resp.json(), _TYPE_AAAA)
        # Malformed answer bodies surface as KeyError/TypeError/AttributeError
        except (httpx.HTTPError, ValueError, KeyError, TypeError, AttributeError) as e:
            logger.error("DNS resolution failed", domain=domain, error=str(e))
            raise DNSResolutionError(domain, str(e)) from e

        log_dns_lookup(logger, domain, ipv4, ipv6)
        return ResolvedAddresses(ipv4=ipv4, ipv6=ipv6)

    async def resolve_many(self, domains: List[str]) -> List[ResolvedAddresses]:
        """Resolve several domains concurrently, preserving input order."""
        return list(await asyncio.gather(*(self.resolve(d) for d in domains)))


def _answers(payload: Dict[str, Any], rr_type: int) -> List[str]:
    return [
        record["data"]
        for record in payload.get("Answer") or []
        if record.get("type", rr_type) == rr_type
    ]
