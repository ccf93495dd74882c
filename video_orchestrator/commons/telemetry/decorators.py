"""Telemetry decorators for timing and exception logging."""

import functools
import inspect
import logging
import time
from collections.abc import Callable
from contextvars import Token
from typing import Any, ParamSpec, Self, TypeVar

from video_orchestrator.commons.telemetry.logger import (
    get_log_context,
    get_logger,
    log_context_var,
)

P = ParamSpec("P")
R = TypeVar("R")


def timed(
    *,
    logger: logging.Logger | None = None,
    level: int = logging.DEBUG,
    threshold_ms: float | None = None,
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Log how long the decorated callable took.

    Args:
        logger: Optional logger instance. Defaults to the function's module logger.
        level: Log level for timing messages.
        threshold_ms: Only log if execution exceeds this many milliseconds.
    """

    def decorator(fn: Callable[P, R]) -> Callable[P, R]:
        log = logger or get_logger(fn.__module__)

        def report(start: float) -> None:
            elapsed_ms = (time.perf_counter() - start) * 1000
            if threshold_ms is None or elapsed_ms >= threshold_ms:
                log.log(
                    level,
                    f"{fn.__qualname__} completed",
                    extra={"duration_ms": round(elapsed_ms, 2)},
                )

        if inspect.iscoroutinefunction(fn):

            @functools.wraps(fn)
            async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> Any:
                start = time.perf_counter()
                try:
                    return await fn(*args, **kwargs)
                finally:
                    report(start)

            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(fn)
        def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            start = time.perf_counter()
            try:
                return fn(*args, **kwargs)
            finally:
                report(start)

        return sync_wrapper

    return decorator


def log_exceptions(
    *,
    logger: logging.Logger | None = None,
    level: int = logging.ERROR,
    message: str | None = None,
) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Log any exception escaping the decorated callable, then re-raise it.

    Cancellation is not an error and passes through silently.
    """

    def decorator(fn: Callable[P, R]) -> Callable[P, R]:
        log = logger or get_logger(fn.__module__)

        def report(exc: Exception) -> None:
            log.log(
                level,
                message or f"Exception in {fn.__qualname__}",
                exc_info=True,
                extra={"exception_type": type(exc).__name__},
            )

        if inspect.iscoroutinefunction(fn):

            @functools.wraps(fn)
            async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> Any:
                try:
                    return await fn(*args, **kwargs)
                except Exception as e:
                    report(e)
                    raise

            return async_wrapper  # type: ignore[return-value]

        @functools.wraps(fn)
        def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            try:
                return fn(*args, **kwargs)
            except Exception as e:
                report(e)
                raise

        return sync_wrapper

    return decorator


class LogContext:
    """Context manager scoping extra fields onto every log line inside it.

    Example:
        with LogContext(video_id=record.id):
            logger.info("Dispatching asset creation")
    """

    def __init__(self, **kwargs: Any) -> None:
        self.context = kwargs
        self._token: Token[dict[str, Any]] | None = None

    def __enter__(self) -> Self:
        self._token = log_context_var.set({**get_log_context(), **self.context})
        return self

    def __exit__(self, *args: Any) -> None:
        if self._token is not None:
            log_context_var.reset(self._token)
            self._token = None
