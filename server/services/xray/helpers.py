"""Address, remark and parameter helpers shared by the Xray builders."""

import base64
import ipaddress
import random
import re
import string
from typing import Dict, List, Sequence, Union

from constants import SPEEDTEST_HOST
from models.settings import WarpAccount
from services.dns_resolver import DNSResolver, ResolvedAddresses

_DOMAIN_RE = re.compile(r"^(?!-)(?:[A-Za-z0-9-]{1,63}\.)+[A-Za-z]{2,}$")
_UUID_RE = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$", re.IGNORECASE)
_PATH_ALPHABET = string.ascii_letters + string.digits


def is_domain(address: str) -> bool:
    return bool(_DOMAIN_RE.match(address))


def is_ipv4(address: str) -> bool:
    try:
        return isinstance(ipaddress.ip_address(address), ipaddress.IPv4Address)
    except ValueError:
        return False


def is_ipv6(address: str) -> bool:
    """Accepts bare and bracketed IPv6 literals."""
    try:
        return isinstance(ipaddress.ip_address(address.strip("[]")), ipaddress.IPv6Address)
    except ValueError:
        return False


def is_valid_uuid(value: str) -> bool:
    return bool(_UUID_RE.match(value))


def endpoint_host(endpoint: str) -> str:
    """Host part of ``host:port`` or ``[v6]:port``."""
    if endpoint.startswith("["):
        return endpoint[1:endpoint.index("]")]
    return endpoint.split(":")[0]


def get_random_path(length: int) -> str:
    return "".join(random.choice(_PATH_ALPHABET) for _ in range(length))


def random_upper_case(value: str) -> str:
    """Randomize letter case to vary the SNI fingerprint per document."""
    return "".join(c.upper() if random.random() < 0.5 else c for c in value)


def base64_to_decimal(value: str) -> List[int]:
    return list(base64.b64decode(value))


def noise_range(minimum: int, maximum: int) -> Union[int, str]:
    """Single value when the bounds match, ``"min-max"`` otherwise."""
    return minimum if minimum == maximum else f"{minimum}-{maximum}"


def dedupe(values: Sequence[str]) -> List[str]:
    return list(dict.fromkeys(values))


def get_config_addresses(host_name: str, clean_ips: Sequence[str], enable_ipv6: bool,
                         resolved: ResolvedAddresses) -> List[str]:
    """Candidate server addresses: host, speedtest host, resolved IPs, then clean IPs.

    Pure function; ``resolved`` holds the host's DNS answers.
    """
    ipv6 = [f"[{ip}]" for ip in resolved.ipv6] if enable_ipv6 else []
    return dedupe([host_name, SPEEDTEST_HOST, *resolved.ipv4, *ipv6, *clean_ips])


async def resolve_config_addresses(resolver: DNSResolver, host_name: str,
                                   clean_ips: Sequence[str], enable_ipv6: bool) -> List[str]:
    resolved = await resolver.resolve(host_name)
    return get_config_addresses(host_name, clean_ips, enable_ipv6, resolved)


def generate_remark(index: int, port: int, address: str, clean_ips: Sequence[str],
                    protocol: str, config_type: str = "", prefix: str = "💦") -> str:
    """Human-readable label, e.g. ``💦 1 - VLESS F - Domain : 443``."""
    type_suffix = f" {config_type}" if config_type else ""
    if address in clean_ips:
        address_type = "Clean IP"
    elif is_domain(address):
        address_type = "Domain"
    elif is_ipv4(address):
        address_type = "IPv4"
    elif is_ipv6(address):
        address_type = "IPv6"
    else:
        address_type = ""
    return f"{prefix} {index} - {protocol}{type_suffix} - {address_type} : {port}"


def extract_wireguard_params(accounts: Sequence[WarpAccount], is_chain: bool) -> Dict[str, str]:
    """WireGuard key material; the chained (WoW) hop uses the second account."""
    account = accounts[1 if is_chain else 0]
    config = account.account.config
    return {
        "warp_ipv6": f"{config.interface.addresses.v6}/128",
        "reserved": config.client_id,
        "public_key": config.peers[0].public_key,
        "private_key": account.private_key,
    }
