from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from backend.routes import alerts, analytics, currency, health
from backend.routes.common import error_json
from src.config import load_config
from src.utils.errors import ConfigurationError


logger = logging.getLogger(__name__)

@asynccontextmanager
async def lifespan(app: FastAPI):
    """Load configuration (and logging) before the first request."""
    try:
        cfg = load_config()
        logger.info(f"Proxying analytics requests to {cfg.upstream_base_url}")
    except ConfigurationError as e:
        logger.error(f"Configuration error at startup: {e}")
        raise
    yield


app = FastAPI(
    title="Currency Insights Dashboard API",
    description="Same-origin proxy over the CEWS analytics backend",
    version="0.1.0",
    lifespan=lifespan,
)


@app.exception_handler(ConfigurationError)
async def configuration_error_handler(request: Request, exc: ConfigurationError):
    logger.error(f"Configuration error serving {request.url.path}: {exc}")
    return error_json(500, "Server configuration error")


# CORS (broad for dev; tighten in production)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Routers
app.include_router(currency.router, prefix="/api", tags=["currency"])
app.include_router(analytics.router, prefix="/api", tags=["analytics"])
app.include_router(alerts.router, prefix="/api/alerts", tags=["alerts"])
app.include_router(health.router, tags=["health"])
