"""Centralized constants for Xray config generation.

Single source of truth for port sets, geo/category tables and fixed addresses
shared by the DNS, routing and orchestration builders.
"""

from typing import FrozenSet, List, Tuple

# =============================================================================
# PORTS
# =============================================================================

DEFAULT_HTTPS_PORTS: FrozenSet[int] = frozenset([443, 8443, 2053, 2083, 2087, 2096])

# =============================================================================
# DNS
# =============================================================================

WORKERLESS_REMOTE_DNS = "https://cloudflare-dns.com/dns-query"
WARP_REMOTE_DNS: Tuple[str, ...] = ("1.1.1.1", "1.0.0.1")
WARP_REMOTE_DNS_V6: Tuple[str, ...] = ("2606:4700:4700::1111", "2606:4700:4700::1001")

# Resolved together and pinned to cloudflare-dns.com in workerless mode
WORKERLESS_DNS_DOMAINS: Tuple[str, ...] = ("cloudflare-dns.com", "cloudflare.com", "dash.cloudflare.com")

BALANCER_PROBE_DOMAIN = "www.gstatic.com"
BALANCER_PROBE_URL = "https://www.gstatic.com/generate_204"
BLOCK_HOST_ADDRESS = "127.0.0.1"

# =============================================================================
# GEO / CATEGORY TABLES
# =============================================================================

# (settings attribute, geosite, geoip) used by the local-DNS bypass server
DNS_BYPASS_RULES: Tuple[Tuple[str, str, str], ...] = (
    ("bypass_iran", "geosite:category-ir", "geoip:ir"),
    ("bypass_china", "geosite:cn", "geoip:cn"),
    ("bypass_russia", "geosite:category-ru", "geoip:ru"),
)

# (settings attribute, geosite) resolved to the block address
DNS_BLOCK_RULES: Tuple[Tuple[str, str], ...] = (
    ("block_ads", "geosite:category-ads-all"),
    ("block_ads", "geosite:category-ads-ir"),
    ("block_porn", "geosite:category-porn"),
)

# (settings attribute, rule type, geosite, geoip) folded into aggregate routing rules
# Russia mirrors its DNS bypass entry so bypassed domains also route direct
ROUTING_GEO_RULES: Tuple[Tuple[str, str, str, str], ...] = (
    ("bypass_lan", "direct", "geosite:private", "geoip:private"),
    ("bypass_iran", "direct", "geosite:category-ir", "geoip:ir"),
    ("bypass_china", "direct", "geosite:cn", "geoip:cn"),
    ("bypass_russia", "direct", "geosite:category-ru", "geoip:ru"),
    ("block_ads", "block", "geosite:category-ads-all", ""),
    ("block_ads", "block", "geosite:category-ads-ir", ""),
    ("block_porn", "block", "geosite:category-porn", ""),
)

BLOCKED_IPS: Tuple[str, ...] = ("10.10.34.34", "10.10.34.35", "10.10.34.36")

# =============================================================================
# OUTBOUNDS
# =============================================================================

WS_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/127.0.0.0 Safari/537.36"
)
WS_EARLY_DATA_QUERY = "?ed=2560"
WS_RANDOM_PATH_LENGTH = 16
USER_LEVEL = 8

WARP_IPV4_ADDRESS = "172.16.0.2/32"
WARP_MTU = 1280

# Extra address always offered alongside the worker host
SPEEDTEST_HOST = "www.speedtest.net"

# Fragment length ranges probed in parallel by the best-fragment document
BEST_FRAGMENT_LENGTHS: List[str] = [
    "10-20", "20-30", "30-40", "40-50", "50-60", "60-70",
    "70-80", "80-90", "90-100", "10-30", "20-40", "30-50",
    "40-60", "50-70", "60-80", "70-90", "80-100", "100-200",
]

NIKANG_CLIENT = "nikang"
