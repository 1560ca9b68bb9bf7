"""Health check endpoint with a catalog connectivity probe.

A catalog reporting "disconnected" does not change the overall status
("ok"): the endpoint always returns 200 so load balancers keep routing.
"""

from __future__ import annotations

import asyncio
from typing import Annotated

import structlog
from fastapi import APIRouter, Depends

from preppal.api.dependencies import Services, get_services
from preppal.config import settings

logger = structlog.get_logger()

router = APIRouter(tags=["health"])

VERSION = "0.1.0"
_CHECK_TIMEOUT = 3.0  # seconds


async def _check_catalog(services: Services) -> str:
    """Ping the configured catalog with a short timeout."""
    try:
        await asyncio.wait_for(services.catalog.ping(), timeout=_CHECK_TIMEOUT)
        return "connected"
    except Exception as exc:
        logger.debug("health_catalog_failed", error=str(exc))
        return "disconnected"


@router.get("/health")
async def health_check(services: Annotated[Services, Depends(get_services)]) -> dict:
    catalog = await _check_catalog(services)
    return {
        "status": "ok",
        "version": VERSION,
        "environment": settings.environment,
        "catalog_backend": settings.catalog_backend,
        "catalog": catalog,
    }
