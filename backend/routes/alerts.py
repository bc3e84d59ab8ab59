from __future__ import annotations

from fastapi import APIRouter, Depends, Request

from backend.dependencies import get_proxy
from backend.models.requests import AlertRegistrationRequest
from backend.models.responses import ERROR_RESPONSES
from backend.routes.common import error_json, read_json_object, respond
from src.proxy.resources import AnalyticsProxy
from src.utils.errors import ValidationError


router = APIRouter()


@router.post("/register", status_code=201, responses=ERROR_RESPONSES)
async def register_alert(request: Request, proxy: AnalyticsProxy = Depends(get_proxy)):
    try:
        body = await read_json_object(request, AlertRegistrationRequest)
    except ValidationError as e:
        return error_json(400, str(e))
    return await respond("alerts", proxy.register_alert(body))
