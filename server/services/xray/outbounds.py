"""Outbound descriptors for the four proxy families.

Each family is one frozen dataclass variant of ``Outbound``:

- ``VlessWsOutbound``  - VLESS over websocket (UUID auth)
- ``TrojanWsOutbound`` - Trojan over websocket (password auth)
- ``WarpOutbound``     - WireGuard tunnel to a WARP endpoint
- ``ChainOutbound``    - second hop (socks/http/vless) dialed through ``proxy``

Variants are immutable; ``retag`` returns a copy with a new tag and,
optionally, a new ``dialerProxy`` so batch documents can reference
per-cell outbounds by unique tags.
"""

import base64
import json
from dataclasses import dataclass, replace
from typing import Any, Dict, List, Optional, Sequence, Tuple, Union

from pydantic import ValidationError

from constants import (
    DEFAULT_HTTPS_PORTS,
    NIKANG_CLIENT,
    USER_LEVEL,
    WARP_IPV4_ADDRESS,
    WARP_MTU,
    WS_EARLY_DATA_QUERY,
    WS_RANDOM_PATH_LENGTH,
    WS_USER_AGENT,
)
from models.settings import ChainProxyParams, ProxySettings, WarpAccount
from services.xray.exceptions import ChainProxyError
from services.xray.helpers import base64_to_decimal, extract_wireguard_params, get_random_path, noise_range

_MUX = {
    "enabled": True,
    "concurrency": 8,
    "xudpConcurrency": 16,
    "xudpProxyUDP443": "reject",
}


@dataclass(frozen=True)
class Sockopt:
    dialer_proxy: Optional[str] = None
    tcp_keep_alive_idle: Optional[int] = None
    tcp_no_delay: Optional[bool] = None
    domain_strategy: Optional[str] = None

    def to_xray(self) -> Dict[str, Any]:
        fields = {
            "dialerProxy": self.dialer_proxy,
            "tcpKeepAliveIdle": self.tcp_keep_alive_idle,
            "tcpNoDelay": self.tcp_no_delay,
            "domainStrategy": self.domain_strategy,
        }
        return {k: v for k, v in fields.items() if v is not None}


@dataclass(frozen=True)
class TlsSettings:
    server_name: str
    fingerprint: str
    alpn: Tuple[str, ...]
    allow_insecure: bool = False

    def to_xray(self) -> Dict[str, Any]:
        return {
            "allowInsecure": self.allow_insecure,
            "fingerprint": self.fingerprint,
            "alpn": list(self.alpn),
            "serverName": self.server_name,
        }


@dataclass(frozen=True)
class Outbound:
    tag: str

    def to_xray(self) -> Dict[str, Any]:
        raise NotImplementedError

    @property
    def dialer_proxy(self) -> Optional[str]:
        sockopt = getattr(self, "sockopt", None)
        return sockopt.dialer_proxy if sockopt else None

    def retag(self, tag: str, dialer_proxy: Optional[str] = None) -> "Outbound":
        if dialer_proxy is None:
            return replace(self, tag=tag)
        sockopt = getattr(self, "sockopt", None) or Sockopt()
        return replace(self, tag=tag, sockopt=replace(sockopt, dialer_proxy=dialer_proxy))


@dataclass(frozen=True)
class _WsOutbound(Outbound):
    address: str
    port: int
    host: str
    path: str
    tls: Optional[TlsSettings]
    sockopt: Optional[Sockopt]

    def _ws_headers(self) -> Dict[str, str]:
        return {"Host": self.host}

    def _stream_settings(self) -> Dict[str, Any]:
        stream: Dict[str, Any] = {
            "network": "ws",
            "security": "tls" if self.tls else "none",
        }
        if self.sockopt is not None:
            stream["sockopt"] = self.sockopt.to_xray()
        stream["wsSettings"] = {
            "headers": self._ws_headers(),
            "path": self.path,
        }
        if self.tls:
            stream["tlsSettings"] = self.tls.to_xray()
        return stream


@dataclass(frozen=True)
class VlessWsOutbound(_WsOutbound):
    user_id: str

    def _ws_headers(self) -> Dict[str, str]:
        return {"Host": self.host, "User-Agent": WS_USER_AGENT}

    def to_xray(self) -> Dict[str, Any]:
        return {
            "protocol": "vless",
            "settings": {
                "vnext": [
                    {
                        "address": self.address,
                        "port": self.port,
                        "users": [{"id": self.user_id, "encryption": "none", "level": USER_LEVEL}],
                    }
                ]
            },
            "streamSettings": self._stream_settings(),
            "tag": self.tag,
        }


@dataclass(frozen=True)
class TrojanWsOutbound(_WsOutbound):
    password: str

    def to_xray(self) -> Dict[str, Any]:
        return {
            "protocol": "trojan",
            "settings": {
                "servers": [
                    {
                        "address": self.address,
                        "port": self.port,
                        "password": self.password,
                        "level": USER_LEVEL,
                    }
                ]
            },
            "streamSettings": self._stream_settings(),
            "tag": self.tag,
        }


@dataclass(frozen=True)
class WarpNoise:
    mode: str
    count: Union[int, str]
    payload_size: Union[int, str]
    delay: Union[int, str]

    def to_xray(self) -> Dict[str, Any]:
        return {
            "wnoise": self.mode,
            "wnoisecount": self.count,
            "wpayloadsize": self.payload_size,
            "wnoisedelay": self.delay,
        }


@dataclass(frozen=True)
class WarpOutbound(Outbound):
    endpoint: str
    public_key: str
    private_key: str
    warp_ipv6: str
    reserved: Tuple[int, ...]
    sockopt: Optional[Sockopt] = None
    noise: Optional[WarpNoise] = None

    def to_xray(self) -> Dict[str, Any]:
        settings: Dict[str, Any] = {
            "address": [WARP_IPV4_ADDRESS, self.warp_ipv6],
            "mtu": WARP_MTU,
            "peers": [{"endpoint": self.endpoint, "publicKey": self.public_key, "keepAlive": 5}],
            "reserved": list(self.reserved),
            "secretKey": self.private_key,
        }
        if self.noise:
            settings.update(self.noise.to_xray())

        outbound: Dict[str, Any] = {"protocol": "wireguard", "settings": settings}
        if self.sockopt is not None:
            outbound["streamSettings"] = {"sockopt": self.sockopt.to_xray()}
        outbound["tag"] = self.tag
        return outbound


@dataclass(frozen=True)
class ChainOutbound(Outbound):
    params: ChainProxyParams
    sockopt: Sockopt

    @property
    def has_mux(self) -> bool:
        """Reality and gRPC transports do not support multiplexing."""
        if self.params.protocol in ("socks", "http"):
            return True
        return self.params.security != "reality" and self.params.type != "grpc"

    def to_xray(self) -> Dict[str, Any]:
        if self.params.protocol in ("socks", "http"):
            return self._proxy_outbound()
        return self._vless_outbound()

    def _proxy_outbound(self) -> Dict[str, Any]:
        p = self.params
        return {
            "protocol": p.protocol,
            "settings": {
                "servers": [
                    {
                        "address": p.host,
                        "port": p.port,
                        "users": [{"user": p.user, "pass": p.password, "level": USER_LEVEL}],
                    }
                ]
            },
            "streamSettings": {
                "network": "tcp",
                "sockopt": self.sockopt.to_xray(),
            },
            "mux": dict(_MUX),
            "tag": self.tag,
        }

    def _vless_outbound(self) -> Dict[str, Any]:
        p = self.params
        outbound: Dict[str, Any] = {}
        if self.has_mux:
            outbound["mux"] = dict(_MUX)
        outbound["protocol"] = "vless"
        outbound["settings"] = {
            "vnext": [
                {
                    "address": p.host_name,
                    "port": p.port,
                    "users": [
                        {
                            "encryption": "none",
                            "flow": p.flow,
                            "id": p.uuid,
                            "level": USER_LEVEL,
                            "security": "auto",
                        }
                    ],
                }
            ]
        }
        stream: Dict[str, Any] = {
            "network": p.type,
            "security": p.security,
            "sockopt": self.sockopt.to_xray(),
        }

        if p.security == "tls":
            stream["tlsSettings"] = TlsSettings(
                server_name=p.sni,
                fingerprint=p.fp,
                alpn=tuple(p.alpn.split(",")) if p.alpn else (),
            ).to_xray()
        elif p.security == "reality":
            stream["realitySettings"] = {
                "fingerprint": p.fp,
                "publicKey": p.pbk,
                "serverName": p.sni,
                "shortId": p.sid,
                "spiderX": p.spx,
            }

        if p.header_type == "http":
            stream["tcpSettings"] = {
                "header": {
                    "request": {
                        "headers": {"Host": _split(p.host)},
                        "method": "GET",
                        "path": _split(p.path),
                        "version": "1.1",
                    },
                    "response": {
                        "headers": {"Content-Type": ["application/octet-stream"]},
                        "reason": "OK",
                        "status": "200",
                        "version": "1.1",
                    },
                    "type": "http",
                }
            }
        elif p.type == "tcp" and p.security != "reality" and not p.header_type:
            stream["tcpSettings"] = {"header": {"type": "none"}}

        if p.type == "ws":
            stream["wsSettings"] = {"headers": {"Host": p.host}, "path": p.path}
        elif p.type == "grpc":
            stream["grpcSettings"] = {
                "authority": p.authority,
                "multiMode": p.mode == "multi",
                "serviceName": p.service_name,
            }

        outbound["streamSettings"] = stream
        outbound["tag"] = self.tag
        return outbound


def _split(value: str) -> List[str]:
    return [part for part in value.split(",") if part] if value else []


# ---- Builders ----

def _ws_path(prefix: str, proxy_ip: str) -> str:
    encoded_ip = f"/{base64.b64encode(proxy_ip.encode()).decode()}" if proxy_ip else ""
    return f"/{prefix}{get_random_path(WS_RANDOM_PATH_LENGTH)}{encoded_ip}{WS_EARLY_DATA_QUERY}"


def _ws_tls(port: int, sni: str, allow_insecure: bool) -> Optional[TlsSettings]:
    if port not in DEFAULT_HTTPS_PORTS:
        return None
    return TlsSettings(
        server_name=sni,
        fingerprint="randomized",
        alpn=("h2", "http/1.1"),
        allow_insecure=allow_insecure,
    )


def _ws_sockopt(is_fragment: bool, enable_ipv6: bool) -> Sockopt:
    if is_fragment:
        return Sockopt(dialer_proxy="fragment")
    return Sockopt(
        tcp_keep_alive_idle=60,
        tcp_no_delay=True,
        domain_strategy="UseIPv4v6" if enable_ipv6 else "UseIPv4",
    )


def build_vless_outbound(tag: str, address: str, port: int, host: str, sni: str, user_id: str,
                         proxy_ip: str = "", is_fragment: bool = False, allow_insecure: bool = False,
                         enable_ipv6: bool = False) -> VlessWsOutbound:
    return VlessWsOutbound(
        tag=tag,
        address=address,
        port=int(port),
        host=host,
        path=_ws_path("", proxy_ip),
        tls=_ws_tls(int(port), sni, allow_insecure),
        sockopt=_ws_sockopt(is_fragment, enable_ipv6),
        user_id=user_id,
    )


def build_trojan_outbound(tag: str, address: str, port: int, host: str, sni: str, password: str,
                          proxy_ip: str = "", is_fragment: bool = False, allow_insecure: bool = False,
                          enable_ipv6: bool = False) -> TrojanWsOutbound:
    return TrojanWsOutbound(
        tag=tag,
        address=address,
        port=int(port),
        host=host,
        path=_ws_path("tr", proxy_ip),
        tls=_ws_tls(int(port), sni, allow_insecure),
        sockopt=_ws_sockopt(is_fragment, enable_ipv6),
        password=password,
    )


def build_warp_outbound(settings: ProxySettings, accounts: Sequence[WarpAccount], endpoint: str,
                        is_chain: bool, client: str = "xray") -> WarpOutbound:
    params = extract_wireguard_params(accounts, is_chain)

    sockopt = None
    if is_chain:
        sockopt = Sockopt(dialer_proxy="proxy", tcp_keep_alive_idle=100, tcp_no_delay=True)

    noise = None
    if client == NIKANG_CLIENT and not is_chain:
        noise = WarpNoise(
            mode=settings.nikang_noise_mode,
            count=noise_range(settings.noise_count_min, settings.noise_count_max),
            payload_size=noise_range(settings.noise_size_min, settings.noise_size_max),
            delay=noise_range(settings.noise_delay_min, settings.noise_delay_max),
        )

    return WarpOutbound(
        tag="chain" if is_chain else "proxy",
        endpoint=endpoint,
        public_key=params["public_key"],
        private_key=params["private_key"],
        warp_ipv6=params["warp_ipv6"],
        reserved=tuple(base64_to_decimal(params["reserved"])),
        sockopt=sockopt,
        noise=noise,
    )


def parse_chain_proxy_params(raw: Union[str, Dict[str, Any]]) -> ChainProxyParams:
    """Parse the stored descriptor; raises ``ChainProxyError`` when malformed."""
    try:
        data = json.loads(raw) if isinstance(raw, str) else raw
        return ChainProxyParams.model_validate(data)
    except (ValueError, TypeError, ValidationError) as e:
        raise ChainProxyError(f"Invalid chain proxy parameters: {e}") from e


def build_chain_outbound(params: ChainProxyParams) -> ChainOutbound:
    return ChainOutbound(
        tag="chain",
        params=params,
        sockopt=Sockopt(dialer_proxy="proxy", tcp_no_delay=True),
    )
