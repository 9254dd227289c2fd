"""Xray config generation exception hierarchy."""


class XrayConfigError(Exception):
    """Base exception for all config-generation errors."""


class DNSResolutionError(XrayConfigError):
    """DNS-over-HTTPS lookup failed; aborts the whole batch."""

    def __init__(self, domain: str, message: str):
        self.domain = domain
        super().__init__(f"An error occurred while resolving DNS for {domain} - {message}")


class ChainProxyError(XrayConfigError):
    """Stored chain-proxy descriptor could not be parsed."""


class DatasetNotFoundError(XrayConfigError):
    """Settings dataset storage is not available."""


class WarpRegistrationError(XrayConfigError):
    """WARP device registration failed."""
