# backend/discovery/services/base.py
"""
Base Service Pattern for the discovery engine.

Provides common functionality for all service classes including:
- Logging
- Performance monitoring (Prometheus + slow operation warnings)
"""

import asyncio
from contextlib import asynccontextmanager
from functools import wraps
import logging
import time
from typing import Any, AsyncIterator, Callable, Dict, TypeVar, cast

from ..monitoring.prometheus_metrics import prometheus_metrics

logger = logging.getLogger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

SLOW_OPERATION_SECONDS = 1.0


class BaseService:
    """
    Base class for all service layer components.

    Services here do not own a database session; they talk to stores and
    providers that manage their own resources.
    """

    def __init__(self) -> None:
        self.logger = logging.getLogger(self.__class__.__name__)
        self._metrics: Dict[str, Dict[str, Any]] = {}

    @staticmethod
    def measure_operation(operation_name: str) -> Callable[[F], F]:
        """
        Decorator to measure operation performance.

        Usage:
            @BaseService.measure_operation("search")
            async def search(self, spec):
                ...
        """

        def decorator(func: F) -> F:
            func._operation_name = operation_name  # type: ignore[attr-defined]

            if not asyncio.iscoroutinefunction(func):

                @wraps(func)
                def wrapper(self, *args, **kwargs):
                    start_time = time.time()
                    error_type = None
                    try:
                        return func(self, *args, **kwargs)
                    except Exception as e:
                        error_type = type(e).__name__
                        raise
                    finally:
                        self._finish_measurement(operation_name, start_time, error_type)

                return cast(F, wrapper)

            @wraps(func)
            async def async_wrapper(self, *args, **kwargs):
                start_time = time.time()
                error_type = None
                try:
                    return await func(self, *args, **kwargs)
                except Exception as e:
                    error_type = type(e).__name__
                    raise
                finally:
                    self._finish_measurement(operation_name, start_time, error_type)

            return cast(F, async_wrapper)

        return decorator

    @asynccontextmanager
    async def async_measure_operation_context(self, operation_name: str) -> AsyncIterator[None]:
        """Async context manager to measure operation performance."""
        start_time = time.time()
        error_type = None
        try:
            yield
        except Exception as e:
            error_type = type(e).__name__
            raise
        finally:
            self._finish_measurement(operation_name, start_time, error_type)

    def _finish_measurement(self, operation_name: str, start_time: float, error_type: Any) -> None:
        elapsed = time.time() - start_time
        success = error_type is None
        self._record_metric(operation_name, elapsed, success)

        if elapsed > SLOW_OPERATION_SECONDS:
            self.logger.warning(f"Slow operation detected: {operation_name} took {elapsed:.2f}s")

        prometheus_metrics.record_service_operation(
            service=self.__class__.__name__,
            operation=operation_name,
            duration=elapsed,
            status="success" if success else "error",
            error_type=error_type,
        )

    def _record_metric(self, operation: str, elapsed: float, success: bool) -> None:
        if not hasattr(self, "_metrics"):
            self._metrics = {}
        stats = self._metrics.setdefault(
            operation, {"count": 0, "total_time": 0.0, "success_count": 0, "failure_count": 0}
        )
        stats["count"] += 1
        stats["total_time"] += elapsed
        if success:
            stats["success_count"] += 1
        else:
            stats["failure_count"] += 1

    def get_metrics(self) -> Dict[str, Dict[str, Any]]:
        """Per-operation counts and average timings for this instance."""
        result: Dict[str, Dict[str, Any]] = {}
        for operation, stats in getattr(self, "_metrics", {}).items():
            count = stats["count"]
            result[operation] = {
                **stats,
                "avg_time": stats["total_time"] / count if count else 0.0,
                "success_rate": stats["success_count"] / count if count else 0.0,
            }
        return result
