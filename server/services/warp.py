"""WARP device registration.

Registers WireGuard keys with the consumer WARP API and returns the account
material (interface addresses, peer key, reserved client id) that the
WireGuard outbound builder consumes. Two accounts are kept: the first backs
the direct Warp outbound, the second the chained WoW hop.
"""

import asyncio
import base64
import time
from typing import Dict, List, Optional

import httpx
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.x25519 import X25519PrivateKey

from core.config import Settings
from core.logging import get_logger
from models.settings import WarpAccount
from services.xray.exceptions import WarpRegistrationError

logger = get_logger(__name__)

WARP_ACCOUNT_COUNT = 2


def wg_keypair() -> Dict[str, str]:
    """Generate a base64 WireGuard (X25519) key pair."""
    private_key = X25519PrivateKey.generate()
    private_raw = private_key.private_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PrivateFormat.Raw,
        encryption_algorithm=serialization.NoEncryption(),
    )
    public_raw = private_key.public_key().public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    return {
        "private_key": base64.b64encode(private_raw).decode(),
        "public_key": base64.b64encode(public_raw).decode(),
    }


def cf_headers() -> Dict[str, str]:
    return {
        "User-Agent": "okhttp/3.12.1",
        "CF-Client-Version": "a-6.30-3596",
        "Content-Type": "application/json; charset=UTF-8",
    }


class WarpService:
    """Registers WARP devices via the client API."""

    def __init__(self, settings: Settings, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._api_url = settings.warp_api_url.rstrip("/")
        self._timeout = settings.warp_timeout
        self._transport = transport

    async def register_accounts(self) -> List[WarpAccount]:
        async with httpx.AsyncClient(timeout=self._timeout, headers=cf_headers(),
                                     transport=self._transport) as client:
            accounts = await asyncio.gather(
                *(self._register(client) for _ in range(WARP_ACCOUNT_COUNT))
            )
        logger.info("WARP accounts registered", count=len(accounts))
        return list(accounts)

    async def _register(self, client: httpx.AsyncClient) -> WarpAccount:
        keys = wg_keypair()
        body = {
            "install_id": "",
            "fcm_token": "",
            "tos": time.strftime("%Y-%m-%dT%H:%M:%S.000Z", time.gmtime()),
            "key": keys["public_key"],
            "type": "Android",
            "model": "PC",
            "locale": "en_US",
            "warp_enabled": True,
        }
        try:
            resp = await client.post(f"{self._api_url}/reg", json=body)
            resp.raise_for_status()
            return WarpAccount.model_validate({"privateKey": keys["private_key"], "account": resp.json()})
        except (httpx.HTTPError, ValueError) as e:
            logger.error("WARP registration failed", error=str(e))
            raise WarpRegistrationError(f"WARP registration failed: {e}") from e
