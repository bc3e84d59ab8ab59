from __future__ import annotations

from fastapi import APIRouter, Depends

from backend.dependencies import get_settings, get_upstream
from backend.models.responses import HealthResponse
from backend.routes.common import no_cache_json
from src.config import Config
from src.health import get_health_status
from src.proxy.upstream import UpstreamClient


router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health(
    settings: Config = Depends(get_settings),
    upstream: UpstreamClient = Depends(get_upstream),
):
    status = await get_health_status(upstream, settings)
    # Degraded still answers 200: the proxy keeps serving neutral payloads
    return no_cache_json(status)
