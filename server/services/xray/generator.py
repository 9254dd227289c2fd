"""Scenario orchestrators producing the subscription batches.

``get_custom_configs`` walks protocol x port x address and emits one
document per cell, a best-ping balancer over every cell and, in fragment
mode, the best-fragment and workerless documents. ``get_warp_configs``
emits direct and chained (WoW) WireGuard documents per endpoint plus a
best-ping document for each family.
"""

import copy
import time
from dataclasses import replace
from typing import Any, Dict, List, Optional, Sequence

from constants import BEST_FRAGMENT_LENGTHS, DEFAULT_HTTPS_PORTS, NIKANG_CLIENT
from core.config import Settings
from core.logging import get_logger, log_execution_time
from models.settings import ProxySettings
from services.dns_resolver import DNSResolver
from services.xray.config import build_xray_config
from services.xray.dns import build_dns
from services.xray.exceptions import ChainProxyError
from services.xray.helpers import (
    endpoint_host,
    generate_remark,
    is_domain,
    random_upper_case,
    resolve_config_addresses,
)
from services.xray.outbounds import (
    ChainOutbound,
    Outbound,
    build_chain_outbound,
    build_trojan_outbound,
    build_vless_outbound,
    build_warp_outbound,
    parse_chain_proxy_params,
)
from services.xray.routing import build_routing_rules

logger = get_logger(__name__)

Config = Dict[str, Any]


def prepend_outbounds(config: Config, outbounds: Sequence[Outbound]) -> None:
    config["outbounds"][:0] = [o.to_xray() for o in outbounds]


class XrayConfigService:
    """Builds Xray subscription batches for one request."""

    def __init__(self, settings: Settings, resolver: DNSResolver, dataset):
        self._settings = settings
        self._resolver = resolver
        self._dataset = dataset

    @property
    def _prefix(self) -> str:
        return self._settings.remark_prefix

    async def load_chain_proxy(self, proxy_settings: ProxySettings) -> Optional[ChainOutbound]:
        """Chain outbound from stored params; a corrupt descriptor is cleared and ignored."""
        if not proxy_settings.out_proxy:
            return None
        try:
            return build_chain_outbound(parse_chain_proxy_params(proxy_settings.out_proxy_params))
        except ChainProxyError as e:
            logger.warning("An error occurred while parsing chain proxy", error=str(e))
            await self._dataset.clear_chain_proxy(proxy_settings)
            return None

    # ---- Tunnel (VLESS / Trojan) batch ----

    async def get_custom_configs(self, host_name: str, is_fragment: bool) -> List[Config]:
        start = time.time()
        ps = await self._dataset.get_proxy_settings()
        chain = await self.load_chain_proxy(ps)
        is_chain = chain is not None

        addresses = await resolve_config_addresses(
            self._resolver, host_name, ps.clean_ip_list, ps.enable_ipv6
        )
        custom_cdn_addresses = ps.custom_cdn_addr_list
        total_addresses = list(addresses) if is_fragment else [*addresses, *custom_cdn_addresses]
        total_ports = [p for p in ps.ports if p in DEFAULT_HTTPS_PORTS] if is_fragment else list(ps.ports)

        protocols = []
        if ps.vless_configs:
            protocols.append("VLESS")
        if ps.trojan_configs:
            protocols.append("Trojan")

        configs: List[Config] = []
        balanced: List[Outbound] = []
        proxy_index = 1

        for protocol in protocols:
            protocol_index = 1
            for port in total_ports:
                for addr in total_addresses:
                    is_custom_addr = addr in custom_cdn_addresses
                    config_type = "C" if is_custom_addr else "F" if is_fragment else ""
                    sni = ps.custom_cdn_sni if is_custom_addr else random_upper_case(host_name)
                    host = ps.custom_cdn_host if is_custom_addr else host_name
                    remark = generate_remark(
                        protocol_index, port, addr, ps.clean_ip_list, protocol, config_type, self._prefix
                    )

                    config = build_xray_config(ps, remark, is_fragment, False, is_chain)
                    config["dns"] = await build_dns(ps, [addr], self._resolver)
                    config["routing"]["rules"] = build_routing_rules(ps, [addr], is_chain, False, False)

                    if protocol == "VLESS":
                        outbound = build_vless_outbound(
                            "proxy", addr, port, host, sni, self._settings.uuid,
                            ps.proxy_ip, is_fragment, is_custom_addr, ps.enable_ipv6,
                        )
                    else:
                        outbound = build_trojan_outbound(
                            "proxy", addr, port, host, sni, self._settings.tr_pass,
                            ps.proxy_ip, is_fragment, is_custom_addr, ps.enable_ipv6,
                        )

                    prepend_outbounds(config, [chain, outbound] if chain else [outbound])

                    if chain:
                        balanced.append(chain.retag(f"chain-{proxy_index}", f"prox-{proxy_index}"))
                    balanced.append(outbound.retag(f"prox-{proxy_index}"))

                    configs.append(config)
                    proxy_index += 1
                    protocol_index += 1

        final_configs = [*configs, await self._best_ping_config(ps, total_addresses, is_chain, balanced, is_fragment)]
        if is_fragment:
            if balanced:
                final_configs.append(await self._best_fragment_config(ps, host_name, chain, balanced))
            final_configs.append(await self._workerless_config(ps))

        log_execution_time(logger, "xray_custom_configs", start, time.time(),
                           fragment=is_fragment, documents=len(final_configs))
        return final_configs

    async def _best_ping_config(self, ps: ProxySettings, total_addresses: Sequence[str], is_chain: bool,
                                outbounds: Sequence[Outbound], is_fragment: bool) -> Config:
        remark = f"{self._prefix} F - Best Ping 💥" if is_fragment else f"{self._prefix} Best Ping 💥"
        fallback = "chain-2" if is_chain else "prox-2"
        if fallback not in {o.tag for o in outbounds}:
            fallback = None

        config = build_xray_config(ps, remark, is_fragment, True, is_chain, fallback)
        config["dns"] = await build_dns(ps, total_addresses, self._resolver, is_balancer=True)
        config["routing"]["rules"] = build_routing_rules(ps, total_addresses, is_chain, True, False)
        prepend_outbounds(config, outbounds)
        return config

    async def _best_fragment_config(self, ps: ProxySettings, host_name: str,
                                    chain: Optional[ChainOutbound], outbounds: Sequence[Outbound]) -> Config:
        is_chain = chain is not None
        config = build_xray_config(ps, f"{self._prefix} F - Best Fragment 😎", True, True, is_chain)
        config["dns"] = await build_dns(ps, [], self._resolver, domain_to_static_ips=host_name, is_balancer=True)
        config["routing"]["rules"] = build_routing_rules(ps, [], is_chain, True, False)
        fragment = config["outbounds"].pop(0)
        proxy = next(o for o in outbounds if o.tag.startswith("prox-"))

        fragment_outbounds: List[Config] = []
        for index, length in enumerate(BEST_FRAGMENT_LENGTHS, start=1):
            if chain:
                fragment_outbounds.append(chain.retag(f"chain-{index}", f"prox-{index}").to_xray())
            fragment_outbounds.append(proxy.retag(f"prox-{index}", f"frag-{index}").to_xray())
            fragment_outbound = copy.deepcopy(fragment)
            fragment_outbound["tag"] = f"frag-{index}"
            fragment_outbound["settings"]["fragment"]["length"] = length
            fragment_outbound["settings"]["fragment"]["interval"] = "1-1"
            fragment_outbounds.append(fragment_outbound)

        config["outbounds"][:0] = fragment_outbounds
        return config

    async def _workerless_config(self, ps: ProxySettings) -> Config:
        """Fragment-only document usable when the edge endpoint is unreachable."""
        config = build_xray_config(ps, f"{self._prefix} F - WorkerLess ⭐", True, False, False)
        config["dns"] = await build_dns(ps, [], self._resolver, is_workerless=True)
        config["routing"]["rules"] = build_routing_rules(ps, [], False, False, True)
        fake_outbound = build_vless_outbound(
            "fake-outbound", "google.com", 443, "google.com", "google.com",
            self._settings.uuid, allow_insecure=True,
        )
        config["outbounds"].append(replace(fake_outbound, sockopt=None, path="/").to_xray())
        return config

    # ---- WireGuard (Warp / WoW) batch ----

    async def get_warp_configs(self, client: str = "xray") -> List[Config]:
        start = time.time()
        ps = await self._dataset.get_proxy_settings()
        accounts = await self._dataset.get_warp_accounts()
        endpoints = ps.warp_endpoint_list
        outbound_domains = [h for h in (endpoint_host(ep) for ep in endpoints) if is_domain(h)]
        pro = " Pro " if client == NIKANG_CLIENT else " "

        warp_configs: List[Config] = []
        wow_configs: List[Config] = []
        warp_outbounds: List[Outbound] = []
        wow_outbounds: List[Outbound] = []

        for index, endpoint in enumerate(endpoints, start=1):
            host = endpoint_host(endpoint)
            warp_config = build_xray_config(ps, f"{self._prefix} {index} - Warp{pro}🇮🇷", False, False, False, is_warp=True)
            wow_config = build_xray_config(ps, f"{self._prefix} {index} - WoW{pro}🌍", False, False, True, is_warp=True)
            dns = await build_dns(ps, [host], self._resolver, is_warp=True)
            warp_config["dns"] = dns
            wow_config["dns"] = copy.deepcopy(dns)
            warp_config["routing"]["rules"] = build_routing_rules(ps, [host], False, False, False)
            wow_config["routing"]["rules"] = build_routing_rules(ps, [host], True, False, False)

            warp_outbound = build_warp_outbound(ps, accounts, endpoint, False, client)
            wow_outbound = build_warp_outbound(ps, accounts, endpoint, True, client)
            prepend_outbounds(warp_config, [warp_outbound])
            prepend_outbounds(wow_config, [wow_outbound, warp_outbound])
            warp_configs.append(warp_config)
            wow_configs.append(wow_config)

            warp_outbounds.append(warp_outbound.retag(f"prox-{index}"))
            wow_outbounds.append(wow_outbound.retag(f"chain-{index}", f"prox-{index}"))

        dns = await build_dns(ps, outbound_domains, self._resolver, is_balancer=True, is_warp=True)

        warp_best_ping = build_xray_config(ps, f"{self._prefix} Warp{pro}- Best Ping 🚀", False, True, False, is_warp=True)
        warp_best_ping["dns"] = dns
        warp_best_ping["routing"]["rules"] = build_routing_rules(ps, outbound_domains, False, True, False)
        prepend_outbounds(warp_best_ping, warp_outbounds)

        wow_best_ping = build_xray_config(ps, f"{self._prefix} WoW{pro}- Best Ping 🚀", False, True, True, is_warp=True)
        wow_best_ping["dns"] = copy.deepcopy(dns)
        wow_best_ping["routing"]["rules"] = build_routing_rules(ps, outbound_domains, True, True, False)
        prepend_outbounds(wow_best_ping, [*wow_outbounds, *warp_outbounds])

        configs = [*warp_configs, *wow_configs, warp_best_ping, wow_best_ping]
        log_execution_time(logger, "xray_warp_configs", start, time.time(),
                           client=client, documents=len(configs))
        return configs
