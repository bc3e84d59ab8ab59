"""Service health check endpoint."""
from typing import Dict, Any, Optional
from datetime import datetime, timezone
import asyncio

from src.config import Config, get_config
from src.proxy.upstream import ReplyKind, UpstreamClient
from src.utils.errors import DashboardError
from src.utils.logging import get_logger

logger = get_logger(__name__)


class HealthStatus:
    """Health check status."""
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


async def check_config(config: Optional[Config] = None) -> Dict[str, Any]:
    """Check configuration loading."""
    try:
        config = config or get_config()
        if not config.upstream_base_url:
            return {
                "status": HealthStatus.DEGRADED,
                "message": "Missing config field: upstream.base_url"
            }
        return {
            "status": HealthStatus.HEALTHY,
            "message": "Configuration loaded",
            "upstream": config.upstream_base_url,
            "mock_data": config.use_mock_data,
        }
    except DashboardError as e:
        logger.error(f"Config health check failed: {e}")
        return {
            "status": HealthStatus.UNHEALTHY,
            "message": f"Config error: {str(e)}"
        }


async def check_upstream(upstream: UpstreamClient) -> Dict[str, Any]:
    """
    Check that the analytics backend answers at all.

    A slow or unreachable backend only degrades the service: every analytics
    resource still answers with its fallback payload.
    """
    reply = await upstream.ping()
    if reply.kind is ReplyKind.OK:
        return {
            "status": HealthStatus.HEALTHY,
            "message": f"Analytics backend reachable (HTTP {reply.status_code})"
        }
    logger.warning(f"Upstream health check failed: {reply.detail}", extra={"resource": "health", "outcome": reply.kind.value})
    return {
        "status": HealthStatus.DEGRADED,
        "message": f"Analytics backend {reply.kind.value}: {reply.detail}"
    }


async def get_health_status(upstream: UpstreamClient, config: Optional[Config] = None) -> Dict[str, Any]:
    """
    Get overall service health status.

    Returns:
        Dict containing overall status and component statuses
    """
    checks = await asyncio.gather(
        check_config(config),
        check_upstream(upstream),
        return_exceptions=True
    )

    components = {}
    for name, result in zip(("config", "upstream"), checks):
        if isinstance(result, dict):
            components[name] = result
        else:
            components[name] = {"status": HealthStatus.UNHEALTHY, "message": str(result)}

    statuses = [c["status"] for c in components.values()]
    if all(s == HealthStatus.HEALTHY for s in statuses):
        overall_status = HealthStatus.HEALTHY
    elif any(s == HealthStatus.UNHEALTHY for s in statuses):
        overall_status = HealthStatus.UNHEALTHY
    else:
        overall_status = HealthStatus.DEGRADED

    return {
        "status": overall_status,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "components": components,
    }
