"""Proxy-settings dataset backed by the key-value table.

Holds two records: ``proxySettings`` (the panel's option set) and
``warpConfigs`` (registered WARP accounts). Missing records are created with
defaults on first read; an unavailable store raises ``DatasetNotFoundError``.
"""

from typing import Any, Dict, List, Optional
from urllib.parse import urlsplit

from core.database import Database
from core.logging import get_logger
from models.settings import ProxySettings, ResolvedRemoteDNS, WarpAccount
from services.dns_resolver import DNSResolver
from services.warp import WarpService
from services.xray.exceptions import DatasetNotFoundError
from services.xray.helpers import is_domain

logger = get_logger(__name__)

PROXY_SETTINGS_KEY = "proxySettings"
WARP_CONFIGS_KEY = "warpConfigs"


def remote_dns_host(remote_dns: str) -> Optional[str]:
    """Host part of a DoH URL or plain server address."""
    target = remote_dns if "://" in remote_dns else f"//{remote_dns}"
    return urlsplit(target).hostname


class DatasetService:
    """Read/write access to the stored settings record."""

    def __init__(self, database: Database, resolver: DNSResolver, warp_service: WarpService):
        self._database = database
        self._resolver = resolver
        self._warp_service = warp_service

    def _ensure_ready(self) -> None:
        if not self._database.is_ready:
            raise DatasetNotFoundError("KV Dataset is not properly set!")

    async def get_proxy_settings(self) -> ProxySettings:
        self._ensure_ready()
        record = await self._database.get_kv(PROXY_SETTINGS_KEY)
        if record is None:
            logger.info("Proxy settings missing, storing defaults")
            return await self.reset_proxy_settings()
        return ProxySettings.model_validate(record)

    async def update_proxy_settings(self, changes: Dict[str, Any]) -> ProxySettings:
        """Merge panel changes into the stored record and re-pin the remote DNS host."""
        current = await self.get_proxy_settings()
        merged = {**current.to_record(), **changes}
        updated = ProxySettings.model_validate(merged)
        updated.resolved_remote_dns = await self.resolve_remote_dns(updated)
        await self._save(updated)
        logger.info("Proxy settings updated", fields=sorted(changes))
        return updated

    async def reset_proxy_settings(self) -> ProxySettings:
        self._ensure_ready()
        defaults = ProxySettings()
        defaults.resolved_remote_dns = await self.resolve_remote_dns(defaults)
        await self._save(defaults)
        return defaults

    async def clear_chain_proxy(self, proxy_settings: ProxySettings) -> None:
        """Drop a chain-proxy descriptor that failed to parse."""
        cleared = proxy_settings.model_copy(update={"out_proxy": "", "out_proxy_params": ""})
        await self._save(cleared)
        logger.warning("Chain proxy settings cleared")

    async def resolve_remote_dns(self, proxy_settings: ProxySettings) -> ResolvedRemoteDNS:
        host = remote_dns_host(proxy_settings.remote_dns)
        if not host or not is_domain(host):
            return ResolvedRemoteDNS()
        resolved = await self._resolver.resolve(host)
        static_ips = resolved.all if proxy_settings.enable_ipv6 else list(resolved.ipv4)
        return ResolvedRemoteDNS(server=host, static_ips=static_ips)

    async def get_warp_accounts(self) -> List[WarpAccount]:
        self._ensure_ready()
        records = await self._database.get_kv(WARP_CONFIGS_KEY)
        if not records:
            return await self.refresh_warp_accounts()
        return [WarpAccount.model_validate(r) for r in records]

    async def refresh_warp_accounts(self) -> List[WarpAccount]:
        self._ensure_ready()
        accounts = await self._warp_service.register_accounts()
        await self._database.set_kv(
            WARP_CONFIGS_KEY,
            [a.model_dump(by_alias=True) for a in accounts],
        )
        return accounts

    async def _save(self, proxy_settings: ProxySettings) -> None:
        if not await self._database.set_kv(PROXY_SETTINGS_KEY, proxy_settings.to_record()):
            raise DatasetNotFoundError("Failed to store proxy settings")
