"""DNS policy builder.

Server order matters to Xray: the fake-DNS entry (when active) is always
first, followed by the remote resolvers, the outbound-domain bypass server
and finally the geo bypass server.
"""

from typing import Any, Dict, List, Optional, Sequence, Union

from constants import (
    BALANCER_PROBE_DOMAIN,
    BLOCK_HOST_ADDRESS,
    DNS_BLOCK_RULES,
    DNS_BYPASS_RULES,
    WARP_REMOTE_DNS,
    WARP_REMOTE_DNS_V6,
    WORKERLESS_DNS_DOMAINS,
    WORKERLESS_REMOTE_DNS,
)
from models.settings import ProxySettings
from services.dns_resolver import DNSResolver
from services.xray.helpers import is_domain

DNSServer = Union[str, Dict[str, Any]]


def is_fake_dns_enabled(settings: ProxySettings, is_warp: bool) -> bool:
    """Tunnel and WireGuard modes read separate flags."""
    return (settings.vless_trojan_fake_dns and not is_warp) or (settings.warp_fake_dns and is_warp)


def is_ipv6_enabled(settings: ProxySettings, is_warp: bool) -> bool:
    return (settings.enable_ipv6 and not is_warp) or (settings.warp_enable_ipv6 and is_warp)


def remote_dns_servers(settings: ProxySettings, is_workerless: bool, is_warp: bool) -> List[DNSServer]:
    if is_workerless:
        return [WORKERLESS_REMOTE_DNS]
    if is_warp:
        servers: List[DNSServer] = list(WARP_REMOTE_DNS)
        if settings.warp_enable_ipv6:
            servers.extend(WARP_REMOTE_DNS_V6)
        return servers
    return [settings.remote_dns]


def block_hosts(settings: ProxySettings) -> Dict[str, List[str]]:
    return {
        host: [BLOCK_HOST_ADDRESS]
        for flag, host in DNS_BLOCK_RULES
        if getattr(settings, flag)
    }


async def build_static_hosts(settings: ProxySettings, resolver: DNSResolver,
                             domain_to_static_ips: Optional[str],
                             is_workerless: bool, is_warp: bool) -> Dict[str, List[str]]:
    """Merge block entries, a pinned domain, the remote DNS host and workerless pins."""
    hosts = block_hosts(settings) if settings.is_block else {}

    if domain_to_static_ips:
        static_ips = await resolver.resolve(domain_to_static_ips)
        hosts[domain_to_static_ips] = static_ips.all if settings.enable_ipv6 else list(static_ips.ipv4)

    resolved_remote = settings.resolved_remote_dns
    if resolved_remote.server and not is_workerless and not is_warp:
        hosts[resolved_remote.server] = list(resolved_remote.static_ips)

    if is_workerless:
        resolved = await resolver.resolve_many(list(WORKERLESS_DNS_DOMAINS))
        ipv4 = [ip for r in resolved for ip in r.ipv4]
        ipv6 = [ip for r in resolved for ip in r.ipv6] if settings.enable_ipv6 else []
        hosts[WORKERLESS_DNS_DOMAINS[0]] = [*ipv4, *ipv6]

    return hosts


async def build_dns(settings: ProxySettings, outbound_addrs: Sequence[str], resolver: DNSResolver,
                    domain_to_static_ips: Optional[str] = None, is_workerless: bool = False,
                    is_balancer: bool = False, is_warp: bool = False) -> Dict[str, Any]:
    """Assemble the ``dns`` object of one document.

    Raises ``DNSResolutionError`` if any static pinning lookup fails.
    """
    is_fake_dns = is_fake_dns_enabled(settings, is_warp)
    is_ipv6 = is_ipv6_enabled(settings, is_warp)

    outbound_domains = [addr for addr in outbound_addrs if is_domain(addr)]
    outbound_rules = [f"full:{domain}" for domain in outbound_domains]
    if is_balancer:
        outbound_rules.append(f"full:{BALANCER_PROBE_DOMAIN}")

    hosts = await build_static_hosts(settings, resolver, domain_to_static_ips, is_workerless, is_warp)

    servers = remote_dns_servers(settings, is_workerless, is_warp)
    dns: Dict[str, Any] = {}
    if hosts:
        dns["hosts"] = hosts
    dns["servers"] = servers
    dns["queryStrategy"] = "UseIP" if is_ipv6 else "UseIPv4"
    dns["tag"] = "dns"

    # Proxy endpoints must never resolve through the remote or fake resolver
    if outbound_domains:
        servers.append({
            "address": settings.local_dns,
            "domains": outbound_rules,
            "skipFallback": True,
        })

    bypass_domains: List[str] = []
    is_geo_bypass = settings.is_bypass and not is_workerless
    if is_geo_bypass:
        expect_ips: List[str] = []
        for flag, geosite, geoip in DNS_BYPASS_RULES:
            if getattr(settings, flag):
                bypass_domains.append(geosite)
                expect_ips.append(geoip)
        servers.append({
            "address": settings.local_dns,
            "domains": bypass_domains,
            "expectIPs": expect_ips,
            "skipFallback": True,
        })

    if is_fake_dns:
        fake_server: DNSServer = (
            {"address": "fakedns", "domains": list(bypass_domains)}
            if is_geo_bypass
            else "fakedns"
        )
        servers.insert(0, fake_server)

    return dns
