"""Proxy-settings maintenance routes (the panel's data API)."""

from typing import Any, Dict

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import ValidationError

from core.container import container
from core.logging import get_logger
from services.dataset import DatasetService

logger = get_logger(__name__)
router = APIRouter(prefix="/api/settings", tags=["settings"])


@router.get("")
async def get_settings(
    dataset: DatasetService = Depends(lambda: container.dataset_service())
):
    """Current proxy settings record."""
    proxy_settings = await dataset.get_proxy_settings()
    return {"success": True, "settings": proxy_settings.to_record()}


@router.put("")
async def update_settings(
    changes: Dict[str, Any] = Body(...),
    dataset: DatasetService = Depends(lambda: container.dataset_service())
):
    """Merge camelCase changes into the stored record."""
    try:
        proxy_settings = await dataset.update_proxy_settings(changes)
    except ValidationError as e:
        logger.warning("Rejected settings update", error=str(e))
        raise HTTPException(status_code=422, detail=e.errors(include_url=False, include_context=False))
    return {"success": True, "settings": proxy_settings.to_record()}


@router.post("/reset")
async def reset_settings(
    dataset: DatasetService = Depends(lambda: container.dataset_service())
):
    """Restore default proxy settings."""
    proxy_settings = await dataset.reset_proxy_settings()
    logger.info("Proxy settings reset")
    return {"success": True, "settings": proxy_settings.to_record()}


@router.post("/warp")
async def refresh_warp(
    dataset: DatasetService = Depends(lambda: container.dataset_service())
):
    """Register fresh WARP accounts for the WireGuard batch."""
    accounts = await dataset.refresh_warp_accounts()
    return {"success": True, "accounts": len(accounts)}
