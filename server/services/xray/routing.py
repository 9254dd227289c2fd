"""Routing rule builder (first match wins in Xray)."""

from typing import Any, Dict, List, Sequence

from constants import BLOCKED_IPS, ROUTING_GEO_RULES
from models.settings import ProxySettings
from services.xray.helpers import is_domain

Rule = Dict[str, Any]


def _rule(**fields: Any) -> Rule:
    return {**fields, "type": "field"}


def final_outbound_tag(is_chain: bool, is_workerless: bool) -> str:
    if is_chain:
        return "chain"
    if is_workerless:
        return "fragment"
    return "proxy"


def build_geo_rules(settings: ProxySettings, is_workerless: bool) -> List[Rule]:
    """Fold the geo/category table into at most three aggregate rules."""
    direct_domains: List[str] = []
    direct_ips: List[str] = []
    block_domains: List[str] = []

    for flag, rule_type, geosite, geoip in ROUTING_GEO_RULES:
        if not getattr(settings, flag):
            continue
        if rule_type == "direct":
            direct_domains.append(geosite)
            direct_ips.append(geoip)
        else:
            block_domains.append(geosite)

    rules: List[Rule] = []
    if not is_workerless and direct_domains:
        rules.append(_rule(domain=direct_domains, outboundTag="direct"))
        rules.append(_rule(ip=direct_ips, outboundTag="direct"))
    if block_domains:
        rules.append(_rule(domain=block_domains, outboundTag="block"))
    return rules


def build_routing_rules(settings: ProxySettings, outbound_addrs: Sequence[str], is_chain: bool,
                        is_balancer: bool, is_workerless: bool) -> List[Rule]:
    has_outbound_domain = any(is_domain(addr) for addr in outbound_addrs)

    rules: List[Rule] = [
        _rule(inboundTag=["dns-in"], outboundTag="dns-out"),
        _rule(inboundTag=["socks-in", "http-in"], port="53", outboundTag="dns-out"),
    ]

    if not is_workerless and (has_outbound_domain or settings.is_bypass):
        rules.append(_rule(ip=[settings.local_dns], port="53", network="udp", outboundTag="direct"))

    # LAN bypass alone must still emit the private-range direct rules
    if settings.is_bypass or settings.is_block or settings.bypass_lan:
        rules.extend(build_geo_rules(settings, is_workerless))

    if settings.block_udp443:
        rules.append(_rule(network="udp", port="443", outboundTag="block"))

    rules.append(_rule(ip=list(BLOCKED_IPS), outboundTag="block"))

    if is_balancer:
        rules.append(_rule(network="tcp,udp", balancerTag="all"))
    else:
        rules.append(_rule(network="tcp,udp", outboundTag=final_outbound_tag(is_chain, is_workerless)))

    return rules
