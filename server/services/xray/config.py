"""Config assembler: overlays feature toggles on a fresh template."""

from typing import Any, Dict, Optional

from models.settings import ProxySettings
from services.xray.dns import is_fake_dns_enabled, is_ipv6_enabled
from services.xray.template import build_config_template


def apply_fake_dns(config: Dict[str, Any], enabled: bool, ipv6: bool) -> None:
    if not enabled:
        del config["fakedns"]
        return
    for inbound in config["inbounds"][:2]:
        inbound["sniffing"]["destOverride"].append("fakedns")
    if not ipv6:
        config["fakedns"].pop()


def apply_fragment(config: Dict[str, Any], settings: ProxySettings, enabled: bool) -> None:
    if not enabled:
        config["outbounds"].pop(0)
        return
    fragment_outbound = config["outbounds"][0]
    fragment = fragment_outbound["settings"]["fragment"]
    fragment["length"] = f"{settings.length_min}-{settings.length_max}"
    fragment["interval"] = f"{settings.interval_min}-{settings.interval_max}"
    fragment["packets"] = settings.fragment_packets
    fragment_outbound["settings"]["domainStrategy"] = "UseIPv4v6" if settings.enable_ipv6 else "UseIPv4"


def apply_balancer(config: Dict[str, Any], settings: ProxySettings, enabled: bool, is_chain: bool,
                   is_warp: bool, fallback: Optional[str]) -> None:
    if not enabled:
        del config["observatory"]
        del config["routing"]["balancers"]
        return
    interval = settings.best_warp_interval if is_warp else settings.best_vless_trojan_interval
    selector = ["chain" if is_chain else "prox"]
    config["observatory"]["probeInterval"] = f"{interval}s"
    config["observatory"]["subjectSelector"] = selector
    balancer = config["routing"]["balancers"][0]
    balancer["selector"] = list(selector)
    if fallback:
        balancer["fallbackTag"] = fallback


def build_xray_config(settings: ProxySettings, remark: str, is_fragment: bool, is_balancer: bool,
                      is_chain: bool, balancer_fallback: Optional[str] = None,
                      is_warp: bool = False) -> Dict[str, Any]:
    """Return a new document skeleton; DNS, rules and tunnel outbounds are filled by callers."""
    config = build_config_template()
    config["remarks"] = remark
    apply_fake_dns(config, is_fake_dns_enabled(settings, is_warp), is_ipv6_enabled(settings, is_warp))
    apply_fragment(config, settings, is_fragment)
    apply_balancer(config, settings, is_balancer, is_chain, is_warp, balancer_fallback)
    return config
