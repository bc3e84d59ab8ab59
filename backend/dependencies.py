from __future__ import annotations

from typing import Optional

from src.config import Config, load_config
from src.proxy.resources import AnalyticsProxy
from src.proxy.upstream import UpstreamClient


_upstream_singleton: Optional[UpstreamClient] = None
_proxy_singleton: Optional[AnalyticsProxy] = None


def get_settings() -> Config:
    return load_config()


def get_upstream() -> UpstreamClient:
    global _upstream_singleton
    if _upstream_singleton is None:
        _upstream_singleton = UpstreamClient.from_config(get_settings())
    return _upstream_singleton


def get_proxy() -> AnalyticsProxy:
    """Get or create the proxy; the mock flag is read once, here."""
    global _proxy_singleton
    if _proxy_singleton is None:
        cfg = get_settings()
        _proxy_singleton = AnalyticsProxy(
            get_upstream(),
            use_mock_data=cfg.use_mock_data,
            default_pair=cfg.default_pair,
        )
    return _proxy_singleton


def reset_dependencies() -> None:
    """Forget the cached upstream and proxy so the next request rebuilds them."""
    global _upstream_singleton, _proxy_singleton
    _upstream_singleton = None
    _proxy_singleton = None
