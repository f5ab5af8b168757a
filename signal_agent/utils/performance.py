"""
Performance profiling utilities for the Token Signal Agent.

Timing decorators and a process-wide profiler. The monitoring endpoint
reports the collected summaries.
"""
import asyncio
import functools
import time
from collections import defaultdict, deque
from dataclasses import dataclass, field
from typing import Any, Callable, Deque, Dict, Optional

from signal_agent.utils.logging import get_logger

logger = get_logger(__name__)

DEFAULT_MAX_SAMPLES = 500


@dataclass
class PerformanceMetrics:
    """Container for performance metrics data."""
    operation_name: str
    start_time: float
    end_time: Optional[float] = None
    duration: Optional[float] = None
    metadata: Dict[str, Any] = field(default_factory=dict)
    success: bool = True
    error_message: Optional[str] = None

    def complete(self, success: bool = True, error_message: Optional[str] = None) -> None:
        """Mark the operation as completed."""
        self.end_time = time.time()
        self.duration = self.end_time - self.start_time
        self.success = success
        self.error_message = error_message


class PerformanceProfiler:
    """
    Central profiler for collecting and analyzing performance metrics.

    Only the newest ``max_samples`` completed operations are kept per name,
    so summaries describe recent behaviour of a long-running agent.
    """

    def __init__(self, max_samples: int = DEFAULT_MAX_SAMPLES):
        self.max_samples = max_samples
        self.metrics: Dict[str, Deque[PerformanceMetrics]] = defaultdict(lambda: deque(maxlen=self.max_samples))
        self.active_operations: Dict[str, PerformanceMetrics] = {}
        self._counter = 0

    def start_operation(self, operation_name: str, metadata: Optional[Dict[str, Any]] = None) -> str:
        """Start tracking a performance operation."""
        self._counter += 1
        operation_id = f"{operation_name}_{self._counter}"
        self.active_operations[operation_id] = PerformanceMetrics(
            operation_name=operation_name,
            start_time=time.time(),
            metadata=metadata or {},
        )
        return operation_id

    def end_operation(self, operation_id: str, success: bool = True, error_message: Optional[str] = None) -> None:
        """End tracking a performance operation."""
        metrics = self.active_operations.pop(operation_id, None)
        if metrics is not None:
            metrics.complete(success, error_message)
            self.metrics[metrics.operation_name].append(metrics)

    def get_metrics_summary(self, operation_name: Optional[str] = None) -> Dict[str, Any]:
        """Get summary statistics for operations."""
        if operation_name:
            operations = self.metrics.get(operation_name, [])
        else:
            operations = [metric for metrics_list in self.metrics.values() for metric in metrics_list]

        if not operations:
            return {"count": 0, "avg_duration": 0, "min_duration": 0, "max_duration": 0}

        durations = [op.duration for op in operations if op.duration is not None]
        successful_ops = [op for op in operations if op.success]

        return {
            "count": len(operations),
            "successful_count": len(successful_ops),
            "success_rate": len(successful_ops) / len(operations),
            "avg_duration": sum(durations) / len(durations) if durations else 0,
            "min_duration": min(durations) if durations else 0,
            "max_duration": max(durations) if durations else 0,
        }

    def clear_metrics(self) -> None:
        self.metrics.clear()
        self.active_operations.clear()


# Global profiler instance
profiler = PerformanceProfiler()


def time_function(operation_name: Optional[str] = None, log_result: bool = False):
    """
    Decorator to time function execution.

    Args:
        operation_name: Custom name for the operation (defaults to function name)
        log_result: Whether to log the running summary after each call
    """
    def decorator(func: Callable) -> Callable:
        name = operation_name or f"{func.__module__}.{func.__name__}"

        def _finish(operation_id: str, error: Optional[BaseException]) -> None:
            profiler.end_operation(operation_id, success=error is None, error_message=str(error) if error else None)
            if log_result:
                summary = profiler.get_metrics_summary(name)
                logger.info(
                    f"Performance: {name}",
                    duration=summary["avg_duration"],
                    count=summary["count"],
                    success_rate=summary["success_rate"],
                )

        @functools.wraps(func)
        async def async_wrapper(*args, **kwargs) -> Any:
            operation_id = profiler.start_operation(name)
            try:
                result = await func(*args, **kwargs)
            except BaseException as e:
                _finish(operation_id, e)
                raise
            _finish(operation_id, None)
            return result

        @functools.wraps(func)
        def sync_wrapper(*args, **kwargs) -> Any:
            operation_id = profiler.start_operation(name)
            try:
                result = func(*args, **kwargs)
            except BaseException as e:
                _finish(operation_id, e)
                raise
            _finish(operation_id, None)
            return result

        if asyncio.iscoroutinefunction(func):
            return async_wrapper
        return sync_wrapper

    return decorator


def get_performance_summary() -> Dict[str, Any]:
    """Summaries for every tracked operation, keyed by operation name."""
    return {name: profiler.get_metrics_summary(name) for name in list(profiler.metrics.keys())}


def reset_performance_metrics() -> None:
    profiler.clear_metrics()
    logger.info("Performance metrics reset")
