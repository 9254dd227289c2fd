"""Static Xray document skeleton.

``build_config_template`` returns a brand-new structure on every call, so the
assembler may mutate its result freely.
"""

from typing import Any, Dict

from constants import BALANCER_PROBE_URL, USER_LEVEL


def _sniffing() -> Dict[str, Any]:
    return {
        "destOverride": ["http", "tls"],
        "enabled": True,
        "routeOnly": True,
    }


def build_fragment_outbound() -> Dict[str, Any]:
    return {
        "tag": "fragment",
        "protocol": "freedom",
        "settings": {
            "fragment": {
                "packets": "tlshello",
                "length": "",
                "interval": "",
            },
            "domainStrategy": "UseIP",
        },
        "streamSettings": {
            "sockopt": {
                "tcpKeepAliveIdle": 100,
                "tcpNoDelay": True,
            },
        },
    }


def build_config_template() -> Dict[str, Any]:
    return {
        "remarks": "",
        "log": {
            "loglevel": "warning",
        },
        "dns": {},
        "fakedns": [
            {"ipPool": "198.18.0.0/15", "poolSize": 32768},
            {"ipPool": "fc00::/18", "poolSize": 32768},
        ],
        "inbounds": [
            {
                "port": 10808,
                "protocol": "socks",
                "settings": {"auth": "noauth", "udp": True, "userLevel": USER_LEVEL},
                "sniffing": _sniffing(),
                "tag": "socks-in",
            },
            {
                "port": 10809,
                "protocol": "http",
                "settings": {"auth": "noauth", "udp": True, "userLevel": USER_LEVEL},
                "sniffing": _sniffing(),
                "tag": "http-in",
            },
            {
                "listen": "127.0.0.1",
                "port": 10853,
                "protocol": "dokodemo-door",
                "settings": {"address": "1.1.1.1", "network": "tcp,udp", "port": 53},
                "tag": "dns-in",
            },
        ],
        "outbounds": [
            build_fragment_outbound(),
            {"protocol": "dns", "tag": "dns-out"},
            {"protocol": "freedom", "settings": {}, "tag": "direct"},
            {"protocol": "blackhole", "settings": {"response": {"type": "http"}}, "tag": "block"},
        ],
        "policy": {
            "levels": {
                str(USER_LEVEL): {
                    "connIdle": 300,
                    "downlinkOnly": 1,
                    "handshake": 4,
                    "uplinkOnly": 1,
                },
            },
            "system": {
                "statsOutboundUplink": True,
                "statsOutboundDownlink": True,
            },
        },
        "routing": {
            "domainStrategy": "IPIfNonMatch",
            "rules": [],
            "balancers": [
                {
                    "tag": "all",
                    "selector": ["prox"],
                    "strategy": {"type": "leastPing"},
                },
            ],
        },
        "observatory": {
            "probeInterval": "30s",
            "probeURL": BALANCER_PROBE_URL,
            "subjectSelector": ["prox"],
            "EnableConcurrency": True,
        },
        "stats": {},
    }
