"""Xray client configuration builders.

Turns a stored ``ProxySettings`` record into Xray JSON documents:
DNS policy, routing rules, per-protocol outbounds and the assembled
documents returned by the subscription endpoints.
"""

from services.xray.exceptions import (
    ChainProxyError,
    DatasetNotFoundError,
    DNSResolutionError,
    WarpRegistrationError,
    XrayConfigError,
)

__all__ = [
    "ChainProxyError",
    "DatasetNotFoundError",
    "DNSResolutionError",
    "WarpRegistrationError",
    "XrayConfigError",
]
