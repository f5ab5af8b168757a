"""
API routes for monitoring and metrics.
"""
import time
from typing import Any, Dict

from fastapi import APIRouter, Query

from signal_agent.data.data_structures import to_iso, utc_now
from signal_agent.utils.logging import get_logger
from signal_agent.utils.performance import get_performance_summary

router = APIRouter()
logger = get_logger(__name__)

# Simple in-process counters
_metrics = {
    "requests_total": 0,
    "requests_duration_sum": 0.0,
    "errors_total": 0,
    "payments_required_total": 0,
    "start_time": time.time(),
}


def increment_requests():
    """Increment request counter."""
    _metrics["requests_total"] += 1


def record_request_duration(duration: float):
    """Record request duration."""
    _metrics["requests_duration_sum"] += duration


def increment_errors():
    """Increment error counter."""
    _metrics["errors_total"] += 1


def increment_payments_required():
    _metrics["payments_required_total"] += 1


def reset_metrics():
    for key in ("requests_total", "errors_total", "payments_required_total"):
        _metrics[key] = 0
    _metrics["requests_duration_sum"] = 0.0
    _metrics["start_time"] = time.time()


@router.get("/metrics", response_model=Dict[str, Any])
async def get_metrics(include_performance: bool = Query(True, description="Include profiled operation timings")):
    """
    Request counters plus, optionally, profiled operation timings.
    """
    requests_total = _metrics["requests_total"]
    metrics = {
        "timestamp": to_iso(utc_now()),
        "uptime_seconds": time.time() - _metrics["start_time"],
        "requests_total": requests_total,
        "errors_total": _metrics["errors_total"],
        "payments_required_total": _metrics["payments_required_total"],
        "average_request_duration_seconds": (
            _metrics["requests_duration_sum"] / requests_total if requests_total else 0
        ),
        "error_rate": _metrics["errors_total"] / requests_total if requests_total else 0,
    }
    if include_performance:
        metrics["performance"] = get_performance_summary()
    return metrics


@router.get("/ping")
async def ping():
    """
    Simple ping endpoint for load balancer health checks.
    """
    return {"status": "pong", "timestamp": to_iso(utc_now())}
