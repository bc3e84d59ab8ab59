from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from backend.dependencies import get_proxy
from backend.models.requests import AnomalyRequest, CorrelationRequest, PredictionRequest
from backend.models.responses import ERROR_RESPONSES, AnomalyResponse
from backend.routes.common import error_json, read_json_object, respond
from src.proxy.resources import AnalyticsProxy
from src.utils.errors import ValidationError


router = APIRouter()


@router.get("/prediction", responses=ERROR_RESPONSES)
async def get_prediction(request: Request, proxy: AnalyticsProxy = Depends(get_proxy)):
    query = proxy.query(request.query_params)
    return await respond("prediction", proxy.prediction(query))


@router.post("/prediction", responses=ERROR_RESPONSES)
async def post_prediction(request: Request, proxy: AnalyticsProxy = Depends(get_proxy)):
    try:
        body = await read_json_object(request, PredictionRequest)
    except ValidationError as e:
        return error_json(400, str(e))
    # Body fields override query string fields
    query = proxy.query({**request.query_params, **body})
    return await respond("prediction", proxy.prediction(query))


@router.get("/correlation", responses=ERROR_RESPONSES)
async def get_correlation(request: Request, proxy: AnalyticsProxy = Depends(get_proxy)):
    query = proxy.query(request.query_params)
    return await respond("correlation", proxy.correlation(query))


@router.post("/correlation", responses=ERROR_RESPONSES)
async def post_correlation(request: Request, proxy: AnalyticsProxy = Depends(get_proxy)):
    try:
        body = await read_json_object(request, CorrelationRequest)
    except ValidationError as e:
        return error_json(400, str(e))
    return await respond("correlation", proxy.correlation_from_body(body))


@router.get("/volatility", responses=ERROR_RESPONSES)
async def get_volatility(request: Request, proxy: AnalyticsProxy = Depends(get_proxy)):
    query = proxy.query(request.query_params)
    return await respond("volatility", proxy.volatility(query))


@router.get("/anomalies", response_model=AnomalyResponse, responses=ERROR_RESPONSES)
async def get_anomalies(request: Request, proxy: AnalyticsProxy = Depends(get_proxy)):
    query = proxy.query(request.query_params)
    return await respond("anomalies", proxy.anomalies(query))


@router.post("/anomalies", response_model=AnomalyResponse, responses=ERROR_RESPONSES)
async def post_anomalies(request: Request, proxy: AnalyticsProxy = Depends(get_proxy)):
    try:
        body = await read_json_object(request, AnomalyRequest)
    except ValidationError as e:
        return error_json(400, str(e))
    query = proxy.query({**request.query_params, **body})
    return await respond("anomalies", proxy.anomalies(query))


@router.get("/currency-news", responses=ERROR_RESPONSES)
async def get_currency_news(request: Request, proxy: AnalyticsProxy = Depends(get_proxy)):
    return await respond("news", proxy.news(request.query_params))
