from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Dict, Type

import pydantic
from fastapi import Request
from fastapi.responses import JSONResponse

from backend.models.requests import LenientBody
from src.analytics.models import ResourceResult
from src.utils.errors import ValidationError


logger = logging.getLogger(__name__)

NO_CACHE_HEADERS = {
    "Cache-Control": "no-cache, no-store, must-revalidate",
    "Pragma": "no-cache",
    "Expires": "0",
}


def no_cache_json(body: Any, status_code: int = 200) -> JSONResponse:
    return JSONResponse(content=body, status_code=status_code, headers=dict(NO_CACHE_HEADERS))


def error_json(status_code: int, message: str) -> JSONResponse:
    return no_cache_json({"error": message}, status_code)


async def read_json_object(request: Request, model: Type[LenientBody]) -> Dict[str, Any]:
    """Parse a POST body into a dict of non-empty fields.

    Raises:
        ValidationError: body is not valid JSON, not an object, or has
            fields of the wrong type
    """
    raw = await request.body()
    if not raw.strip():
        return {}
    try:
        body = json.loads(raw)
    except ValueError:
        raise ValidationError("Request body must be valid JSON")
    if not isinstance(body, dict):
        raise ValidationError("Request body must be a JSON object")
    try:
        return model.model_validate(body).to_params()
    except pydantic.ValidationError as e:
        fields = ", ".join(str(err["loc"][0]) for err in e.errors() if err.get("loc"))
        raise ValidationError(f"Invalid request parameters ({fields})")


async def respond(resource: str, call: Awaitable[ResourceResult]) -> JSONResponse:
    """Await a proxy handler and serialize its result with no-cache headers.

    Handlers do not raise; anything that escapes anyway becomes a logged 500.
    """
    try:
        result = await call
    except Exception as e:
        logger.exception(f"Unhandled error serving {resource}: {e}", extra={"resource": resource})
        return error_json(500, f"Internal server error while fetching {resource.replace('_', ' ')}")
    if result.is_fallback:
        logger.info(f"Served neutral {resource} payload ({result.reason})", extra={"resource": resource, "outcome": "empty"})
    return no_cache_json(result.body, result.status_code)
