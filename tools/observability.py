"""Observability helpers for instrumenting service operations."""

from __future__ import annotations

import logging
import time
from functools import wraps
from typing import Callable, ParamSpec, TypeVar

from armario_app.logging_config import ensure_correlation_id, get_logger, log_event
from logic.errors import ArmarioError

LOGGER = get_logger(__name__)
P = ParamSpec("P")
R = TypeVar("R")


def instrument_operation(operation: str) -> Callable[[Callable[P, R]], Callable[P, R]]:
    """Wrap a callable to emit started/completed/failed events with durations.

    Expected failures (subclasses of :class:`ArmarioError`) are logged at
    warning level without a traceback; anything else is logged as an error
    with one. Exceptions always propagate to the caller.
    """

    def decorator(func: Callable[P, R]) -> Callable[P, R]:
        @wraps(func)
        def wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            correlation_id = ensure_correlation_id()
            start = time.perf_counter()
            log_event(
                LOGGER,
                logging.INFO,
                "operation_started",
                operation=operation,
                correlation_id=correlation_id,
            )
            try:
                result = func(*args, **kwargs)
            except ArmarioError as exc:
                log_event(
                    LOGGER,
                    logging.WARNING,
                    "operation_refused",
                    operation=operation,
                    correlation_id=correlation_id,
                    error_type=type(exc).__name__,
                    reason=str(exc),
                    duration_ms=round((time.perf_counter() - start) * 1000, 2),
                )
                raise
            except Exception:
                log_event(
                    LOGGER,
                    logging.ERROR,
                    "operation_failed",
                    operation=operation,
                    correlation_id=correlation_id,
                    duration_ms=round((time.perf_counter() - start) * 1000, 2),
                    exc_info=True,
                )
                raise
            log_event(
                LOGGER,
                logging.INFO,
                "operation_completed",
                operation=operation,
                correlation_id=correlation_id,
                duration_ms=round((time.perf_counter() - start) * 1000, 2),
            )
            return result

        return wrapper

    return decorator


__all__ = ["instrument_operation"]
