"""HTTP client for the remote analytics backend.

Every call runs under a total time budget and comes back as an
:class:`UpstreamReply` instead of raising, so resource handlers decide per
resource whether a failure means fallback or propagation.
"""
from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Mapping, Optional

import httpx

from src.config import DEFAULT_TIMEOUTS, Config
from src.utils.logging import get_logger

logger = get_logger(__name__)

# Upstream statuses that mean "no data for this request" rather than a bug
ABSENT_STATUSES = frozenset({404, 405, 422, 504})

REQUEST_HEADERS = {
    "Accept": "application/json",
    "Cache-Control": "no-cache, no-store, must-revalidate",
}


class ReplyKind(str, Enum):
    OK = "ok"
    ABSENT = "absent"        # 404 / 405 / 422 / 504
    FAILED = "failed"        # any other non-2xx status
    TIMEOUT = "timeout"      # time budget exceeded
    TRANSPORT = "transport"  # connection failure or unreadable 2xx body


@dataclass
class UpstreamReply:
    kind: ReplyKind
    status_code: Optional[int] = None
    payload: Any = None
    detail: str = ""
    elapsed_ms: float = 0.0

    @property
    def ok(self) -> bool:
        return self.kind is ReplyKind.OK

    @property
    def is_soft_failure(self) -> bool:
        """Failures analytics resources answer with a FallbackResult."""
        return self.kind in (ReplyKind.ABSENT, ReplyKind.TIMEOUT, ReplyKind.TRANSPORT)


def _error_payload(response: httpx.Response) -> Any:
    try:
        return response.json()
    except ValueError:
        return response.text[:500]


class UpstreamClient:
    """Issues bounded-time requests against the analytics backend."""

    def __init__(
        self,
        base_url: str,
        timeouts: Optional[Mapping[str, float]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeouts: Dict[str, float] = dict(DEFAULT_TIMEOUTS)
        if timeouts:
            self.timeouts.update({k: float(v) for k, v in timeouts.items()})
        self._transport = transport

    @classmethod
    def from_config(cls, cfg: Config, transport: Optional[httpx.AsyncBaseTransport] = None) -> "UpstreamClient":
        return cls(cfg.upstream_base_url, cfg.timeouts, transport=transport)

    def budget(self, resource: str) -> float:
        return self.timeouts.get(resource, 10.0)

    async def request(
        self,
        resource: str,
        method: str,
        path: str,
        params: Optional[Mapping[str, Any]] = None,
        json: Any = None,
        budget: Optional[float] = None,
        pair: str = "",
    ) -> UpstreamReply:
        """Send one request and classify the outcome.

        Args:
            resource: Resource name; selects the default time budget and tags logs
            method: HTTP verb
            path: Path relative to the backend base URL
            params: Query parameters
            json: JSON body for POST requests
            budget: Total seconds allowed, overriding the resource default
            pair: Currency pair for log context

        Returns:
            Classified reply; never raises for network or HTTP failures
        """
        seconds = budget if budget is not None else self.budget(resource)
        log_extra = {"resource": resource, "pair": pair}
        started = time.perf_counter()

        def elapsed() -> float:
            return round((time.perf_counter() - started) * 1000, 2)

        logger.info(f"{method} {self.base_url}{path} (budget {seconds}s)", extra=log_extra)
        try:
            async with httpx.AsyncClient(
                base_url=self.base_url,
                transport=self._transport,
                timeout=seconds,
                headers=REQUEST_HEADERS,
            ) as client:
                response = await asyncio.wait_for(
                    client.request(method, path, params=params, json=json),
                    timeout=seconds,
                )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            logger.warning(f"{resource} request timed out after {seconds}s", extra={**log_extra, "outcome": "timeout"})
            return UpstreamReply(ReplyKind.TIMEOUT, detail=f"timed out after {seconds}s", elapsed_ms=elapsed())
        except httpx.HTTPError as e:
            logger.error(f"{resource} request failed: {e}", extra={**log_extra, "outcome": "transport"})
            return UpstreamReply(ReplyKind.TRANSPORT, detail=str(e) or e.__class__.__name__, elapsed_ms=elapsed())

        status = response.status_code
        log_extra["status_code"] = status
        if status in ABSENT_STATUSES:
            logger.info(f"{resource} upstream has no data (HTTP {status})", extra={**log_extra, "outcome": "absent"})
            return UpstreamReply(ReplyKind.ABSENT, status, _error_payload(response), f"HTTP {status}", elapsed())
        if status >= 400:
            logger.error(f"{resource} upstream error (HTTP {status})", extra={**log_extra, "outcome": "failed"})
            return UpstreamReply(ReplyKind.FAILED, status, _error_payload(response), f"HTTP {status}", elapsed())

        try:
            payload = response.json()
        except ValueError:
            logger.error(f"{resource} upstream returned unparseable JSON", extra={**log_extra, "outcome": "transport"})
            return UpstreamReply(ReplyKind.TRANSPORT, status, response.text[:500], "invalid JSON body", elapsed())

        return UpstreamReply(ReplyKind.OK, status, payload, elapsed_ms=elapsed())

    async def ping(self, budget: Optional[float] = None) -> UpstreamReply:
        """Reachability probe against the base URL; any HTTP answer counts."""
        seconds = budget if budget is not None else self.budget("health")
        try:
            async with httpx.AsyncClient(base_url=self.base_url, transport=self._transport, timeout=seconds) as client:
                response = await asyncio.wait_for(client.get("/"), timeout=seconds)
        except (asyncio.TimeoutError, httpx.TimeoutException):
            return UpstreamReply(ReplyKind.TIMEOUT, detail=f"timed out after {seconds}s")
        except httpx.HTTPError as e:
            return UpstreamReply(ReplyKind.TRANSPORT, detail=str(e) or e.__class__.__name__)
        return UpstreamReply(ReplyKind.OK, response.status_code)
