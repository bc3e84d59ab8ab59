from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from backend.dependencies import get_proxy
from backend.models.responses import ERROR_RESPONSES, ExchangeRateResponse
from backend.routes.common import respond
from src.proxy.resources import AnalyticsProxy


router = APIRouter()


@router.get("/exchange-rate", response_model=ExchangeRateResponse, responses=ERROR_RESPONSES)
async def get_exchange_rate(request: Request, proxy: AnalyticsProxy = Depends(get_proxy)):
    query = proxy.query(request.query_params)
    return await respond("exchange_rate", proxy.exchange_rate(query))


@router.get("/historical", responses=ERROR_RESPONSES)
async def get_historical(request: Request, proxy: AnalyticsProxy = Depends(get_proxy)):
    """Daily OHLC rates for a pair, oldest first."""
    query = proxy.query(request.query_params)
    return await respond("historical", proxy.historical(query))
