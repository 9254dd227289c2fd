"""Pydantic v2 models for the stored proxy-settings dataset.

Stored records keep the camelCase keys used by the admin panel, so every field
carries an explicit alias and ``model_dump(by_alias=True)`` is used on write.
"""

from typing import List, Optional, Union
from pydantic import BaseModel, ConfigDict, Field, field_validator


class ResolvedRemoteDNS(BaseModel):
    """Remote DNS server host pinned to its resolved addresses."""
    model_config = ConfigDict(populate_by_name=True)

    server: Optional[str] = None
    static_ips: List[str] = Field(default_factory=list, alias="staticIPs")


class ProxySettings(BaseModel):
    """User-chosen proxy preferences, read once per request."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    # DNS
    remote_dns: str = Field(default="https://8.8.8.8/dns-query", alias="remoteDNS")
    resolved_remote_dns: ResolvedRemoteDNS = Field(default_factory=ResolvedRemoteDNS, alias="resolvedRemoteDNS")
    local_dns: str = Field(default="8.8.8.8", alias="localDNS")

    # Fake DNS / IPv6, tunnel and WireGuard modes are governed separately
    vless_trojan_fake_dns: bool = Field(default=False, alias="vlessTrojanFakeDNS")
    enable_ipv6: bool = Field(default=True, alias="enableIPv6")
    warp_fake_dns: bool = Field(default=False, alias="warpFakeDNS")
    warp_enable_ipv6: bool = Field(default=True, alias="warpEnableIPv6")

    # Bypass / block
    bypass_lan: bool = Field(default=False, alias="bypassLAN")
    bypass_iran: bool = Field(default=False, alias="bypassIran")
    bypass_china: bool = Field(default=False, alias="bypassChina")
    bypass_russia: bool = Field(default=False, alias="bypassRussia")
    block_ads: bool = Field(default=False, alias="blockAds")
    block_porn: bool = Field(default=False, alias="blockPorn")
    block_udp443: bool = Field(default=False, alias="blockUDP443")

    # Fragmentation
    length_min: int = Field(default=100, alias="lengthMin", ge=1)
    length_max: int = Field(default=200, alias="lengthMax", ge=1)
    interval_min: int = Field(default=1, alias="intervalMin", ge=0)
    interval_max: int = Field(default=1, alias="intervalMax", ge=0)
    fragment_packets: str = Field(default="tlshello", alias="fragmentPackets")

    # Balancer probe intervals (seconds)
    best_vless_trojan_interval: int = Field(default=30, alias="bestVLESSTrojanInterval", ge=10)
    best_warp_interval: int = Field(default=30, alias="bestWarpInterval", ge=10)

    # Noise injection for the nikang WireGuard client
    nikang_noise_mode: str = Field(default="quic", alias="nikaNGNoiseMode")
    noise_count_min: int = Field(default=10, alias="noiseCountMin", ge=1)
    noise_count_max: int = Field(default=15, alias="noiseCountMax", ge=1)
    noise_size_min: int = Field(default=5, alias="noiseSizeMin", ge=1)
    noise_size_max: int = Field(default=10, alias="noiseSizeMax", ge=1)
    noise_delay_min: int = Field(default=1, alias="noiseDelayMin", ge=1)
    noise_delay_max: int = Field(default=1, alias="noiseDelayMax", ge=1)

    # Addresses and CDN overrides
    clean_ips: str = Field(default="", alias="cleanIPs")
    custom_cdn_addrs: str = Field(default="", alias="customCdnAddrs")
    custom_cdn_host: str = Field(default="", alias="customCdnHost")
    custom_cdn_sni: str = Field(default="", alias="customCdnSni")
    proxy_ip: str = Field(default="", alias="proxyIP")
    ports: List[int] = Field(default_factory=lambda: [443])
    warp_endpoints: str = Field(default="engage.cloudflareclient.com:2408", alias="warpEndpoints")

    # Protocols
    vless_configs: bool = Field(default=True, alias="vlessConfigs")
    trojan_configs: bool = Field(default=False, alias="trojanConfigs")

    # Chain proxy: share link plus its parsed descriptor as a JSON string
    out_proxy: str = Field(default="", alias="outProxy")
    out_proxy_params: Union[str, dict] = Field(default="", alias="outProxyParams")

    @field_validator("ports", mode="before")
    @classmethod
    def coerce_ports(cls, v):
        if isinstance(v, str):
            return [p.strip() for p in v.split(",") if p.strip()]
        if isinstance(v, int) and not isinstance(v, bool):
            return [v]
        if not isinstance(v, (list, tuple)):
            raise ValueError("ports must be a list, a comma-separated string or a single port")
        return list(v)

    @property
    def is_bypass(self) -> bool:
        return self.bypass_iran or self.bypass_china or self.bypass_russia

    @property
    def is_block(self) -> bool:
        return self.block_ads or self.block_porn

    @property
    def clean_ip_list(self) -> List[str]:
        return [ip.strip() for ip in self.clean_ips.split(",") if ip.strip()]

    @property
    def custom_cdn_addr_list(self) -> List[str]:
        return [addr.strip() for addr in self.custom_cdn_addrs.split(",") if addr.strip()]

    @property
    def warp_endpoint_list(self) -> List[str]:
        return [ep.strip() for ep in self.warp_endpoints.split(",") if ep.strip()]

    def to_record(self) -> dict:
        """Serialize for storage using the panel's camelCase keys."""
        return self.model_dump(by_alias=True)


class ChainProxyParams(BaseModel):
    """Parsed chain-proxy descriptor (second hop dialed through the first outbound)."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    protocol: str
    port: int

    # socks / http
    host: str = ""
    user: str = ""
    password: str = Field(default="", alias="pass")

    # vless
    host_name: str = Field(default="", alias="hostName")
    uuid: str = ""
    flow: str = ""
    security: str = "none"
    type: str = "tcp"
    sni: str = ""
    fp: str = ""
    alpn: str = ""
    pbk: str = ""
    sid: str = ""
    spx: str = ""
    header_type: str = Field(default="", alias="headerType")
    path: str = ""
    authority: str = ""
    service_name: str = Field(default="", alias="serviceName")
    mode: str = ""

    @field_validator("protocol")
    @classmethod
    def validate_protocol(cls, v: str) -> str:
        if v not in ("socks", "http", "vless"):
            raise ValueError(f"Unsupported chain proxy protocol: {v}")
        return v

    @field_validator("security")
    @classmethod
    def validate_security(cls, v: str) -> str:
        v = v or "none"
        if v not in ("none", "tls", "reality"):
            raise ValueError(f"Unsupported chain proxy security: {v}")
        return v


class WarpInterfaceAddresses(BaseModel):
    v4: str
    v6: str


class WarpInterface(BaseModel):
    addresses: WarpInterfaceAddresses


class WarpPeer(BaseModel):
    model_config = ConfigDict(extra="ignore")

    public_key: str


class WarpAccountConfig(BaseModel):
    model_config = ConfigDict(extra="ignore")

    client_id: str
    interface: WarpInterface
    peers: List[WarpPeer]


class WarpAccountDetails(BaseModel):
    model_config = ConfigDict(extra="ignore")

    config: WarpAccountConfig


class WarpAccount(BaseModel):
    """Registered WARP device: private key plus the API's account config."""
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    private_key: str = Field(alias="privateKey")
    account: WarpAccountDetails
