"""Subscription routes returning Xray config batches."""

from typing import Any, Dict, Literal

import orjson
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import ORJSONResponse

from core.config import Settings
from core.container import container
from core.logging import get_logger
from services.xray.generator import XrayConfigService

logger = get_logger(__name__)
router = APIRouter(tags=["subscriptions"])

NO_CACHE_HEADERS: Dict[str, str] = {
    "Cache-Control": "no-store, no-cache, must-revalidate, proxy-revalidate",
    "CDN-Cache-Control": "no-store",
}


class ConfigBatchResponse(ORJSONResponse):
    """Indented JSON array with caching disabled."""

    def __init__(self, content: Any, **kwargs):
        super().__init__(content, headers=NO_CACHE_HEADERS, **kwargs)

    def render(self, content: Any) -> bytes:
        return orjson.dumps(content, option=orjson.OPT_INDENT_2)


def verify_user(user_id: str, settings: Settings = Depends(lambda: container.settings())) -> None:
    """Subscription links are keyed by the configured UUID."""
    if user_id != settings.uuid:
        raise HTTPException(status_code=404, detail="Not found")


def request_host(request: Request) -> str:
    return request.url.hostname or ""


@router.get("/sub/{user_id}", dependencies=[Depends(verify_user)])
async def get_custom_configs(
    request: Request,
    xray_service: XrayConfigService = Depends(lambda: container.xray_service())
):
    """Standard batch: one document per protocol/port/address plus best ping."""
    configs = await xray_service.get_custom_configs(request_host(request), is_fragment=False)
    return ConfigBatchResponse(configs)


@router.get("/fragsub/{user_id}", dependencies=[Depends(verify_user)])
async def get_fragment_configs(
    request: Request,
    xray_service: XrayConfigService = Depends(lambda: container.xray_service())
):
    """Fragment batch: adds best-fragment and workerless documents."""
    configs = await xray_service.get_custom_configs(request_host(request), is_fragment=True)
    return ConfigBatchResponse(configs)


@router.get("/warpsub/{user_id}", dependencies=[Depends(verify_user)])
async def get_warp_configs(
    app: Literal["xray", "nikang"] = "xray",
    xray_service: XrayConfigService = Depends(lambda: container.xray_service())
):
    """WireGuard batch: Warp and WoW documents per endpoint plus best ping."""
    configs = await xray_service.get_warp_configs(client=app)
    return ConfigBatchResponse(configs)
