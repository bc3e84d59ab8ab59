"""Utility decorators for logging client data-access calls."""
import inspect
import functools
import time
from typing import Callable

from src.utils.logging import get_logger

logger = get_logger(__name__)


def _pair_from_args(args, kwargs) -> str:
    # Client methods are (self, base, target, ...); news takes (self, currency, ...)
    positional = list(args[1:3])
    base = kwargs.get("base", positional[0] if positional else None)
    target = kwargs.get("target", positional[1] if len(positional) > 1 else None)
    if isinstance(base, str) and isinstance(target, str):
        return f"{base}/{target}"
    return str(base or "")


def log_execution(resource: str):
    """
    Log start, completion and failure of an async data-access call with timing.

    Args:
        resource: Resource name attached to every log record

    Example:
        @log_execution("volatility")
        async def fetch_volatility_analysis(self, base, target, days=30):
            ...
    """
    def decorator(func: Callable):
        if not inspect.iscoroutinefunction(func):
            raise TypeError(f"log_execution only wraps coroutines, got {func.__name__}")

        @functools.wraps(func)
        async def wrapper(*args, **kwargs):
            start_time = time.perf_counter()
            extra = {"function": func.__name__, "resource": resource, "pair": _pair_from_args(args, kwargs)}

            logger.debug(f"Starting {func.__name__}", extra=extra)
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                elapsed = round((time.perf_counter() - start_time) * 1000, 2)
                logger.error(f"Failed {func.__name__}: {e}", extra={**extra, "elapsed_ms": elapsed})
                raise

            elapsed = round((time.perf_counter() - start_time) * 1000, 2)
            logger.info(f"Completed {func.__name__}", extra={**extra, "elapsed_ms": elapsed})
            return result

        return wrapper

    return decorator
