"""
Logging utilities for method tracing.
"""
import functools
import inspect
import logging
import time
from typing import Any, Callable, TypeVar

from crop_review.config import settings

logger = logging.getLogger("crop_review")

F = TypeVar("F", bound=Callable[..., Any])

_REDACTED_KEYS = ("api_key", "key", "token", "secret", "password")


def _summarize_args(args: tuple, kwargs: dict) -> str:
    """Summarize call arguments, excluding secrets and large binary data."""
    args_summary = []
    for i, arg in enumerate(args):
        if isinstance(arg, (str, int, float, bool, type(None))):
            args_summary.append(f"arg{i}={arg}")
        elif isinstance(arg, bytes):
            args_summary.append(f"arg{i}=<bytes:{len(arg)}>")
        else:
            args_summary.append(f"arg{i}=<{type(arg).__name__}>")

    for key, value in kwargs.items():
        if key.lower() in _REDACTED_KEYS:
            args_summary.append(f"{key}=<REDACTED>")
        elif isinstance(value, bytes):
            args_summary.append(f"{key}=<bytes:{len(value)}>")
        elif isinstance(value, (str, int, float, bool, type(None))):
            args_summary.append(f"{key}={value}")
        else:
            args_summary.append(f"{key}=<{type(value).__name__}>")
    return ", ".join(args_summary)


def trace_calls(func: F) -> F:
    """
    Decorator to log method entry/exit when TRACE_CALLS is enabled.

    Logs function name, args summary (excluding secrets/image bytes), and duration.
    Only active when TRACE_CALLS=true at import time.
    """
    if not settings.TRACE_CALLS:
        return func

    func_name = f"{func.__module__}.{func.__qualname__}"

    if inspect.iscoroutinefunction(func):

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs):
            logger.debug(f"[TRACE] ENTER {func_name}({_summarize_args(args, kwargs)})")
            start = time.perf_counter()
            try:
                result = await func(*args, **kwargs)
            except Exception as e:
                duration_ms = int((time.perf_counter() - start) * 1000)
                logger.debug(
                    f"[TRACE] EXIT {func_name} durationMs={duration_ms} error={type(e).__name__}"
                )
                raise
            duration_ms = int((time.perf_counter() - start) * 1000)
            logger.debug(f"[TRACE] EXIT {func_name} durationMs={duration_ms}")
            return result

        return async_wrapper  # type: ignore

    @functools.wraps(func)
    def sync_wrapper(*args, **kwargs):
        logger.debug(f"[TRACE] ENTER {func_name}({_summarize_args(args, kwargs)})")
        start = time.perf_counter()
        try:
            result = func(*args, **kwargs)
        except Exception as e:
            duration_ms = int((time.perf_counter() - start) * 1000)
            logger.debug(
                f"[TRACE] EXIT {func_name} durationMs={duration_ms} error={type(e).__name__}"
            )
            raise
        duration_ms = int((time.perf_counter() - start) * 1000)
        logger.debug(f"[TRACE] EXIT {func_name} durationMs={duration_ms}")
        return result

    return sync_wrapper  # type: ignore
