"""
Health check utilities for monitoring service dependencies.
"""

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Dict, Any, Optional

from sqlalchemy import text

from ..cache import get_cache
from ..database import get_db_session

logger = logging.getLogger(__name__)

CELERY_INSPECT_TIMEOUT = 2.0


class HealthCheckResult:
    """Result of a health check."""

    def __init__(
        self,
        service: str,
        healthy: bool,
        response_time: float,
        details: Optional[Dict[str, Any]] = None,
        required: bool = True
    ):
        self.service = service
        self.healthy = healthy
        self.response_time = response_time
        self.details = details or {}
        self.required = required
        self.timestamp = datetime.now(timezone.utc).isoformat()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "service": self.service,
            "healthy": self.healthy,
            "required": self.required,
            "response_time": self.response_time,
            "details": self.details,
            "timestamp": self.timestamp
        }


async def check_database_health() -> HealthCheckResult:
    """Check database connectivity and performance."""
    start_time = time.perf_counter()

    try:
        async with get_db_session() as db:
            result = await db.execute(text("SELECT 1"))
            value = result.scalar()

        healthy = value == 1
        return HealthCheckResult(
            service="database",
            healthy=healthy,
            response_time=time.perf_counter() - start_time,
            details={"query": "SELECT 1", "result": "success" if healthy else "unexpected result"}
        )

    except Exception as e:
        logger.error(f"Database health check failed: {e}")
        return HealthCheckResult(
            service="database",
            healthy=False,
            response_time=time.perf_counter() - start_time,
            details={"error": str(e), "error_type": type(e).__name__}
        )


async def check_redis_health() -> HealthCheckResult:
    """Check Redis connectivity. The cache is optional, so failure only degrades."""
    start_time = time.perf_counter()
    healthy = await get_cache().ping()

    return HealthCheckResult(
        service="redis",
        healthy=healthy,
        response_time=time.perf_counter() - start_time,
        details={"operation": "ping", "result": "success" if healthy else "unreachable"},
        required=False
    )


async def check_celery_health() -> HealthCheckResult:
    """Check Celery worker connectivity."""
    start_time = time.perf_counter()

    try:
        from ..tasks.celery_app import celery_app

        inspect = celery_app.control.inspect(timeout=CELERY_INSPECT_TIMEOUT)
        stats = await asyncio.to_thread(inspect.stats)

        response_time = time.perf_counter() - start_time

        if stats:
            return HealthCheckResult(
                service="celery",
                healthy=True,
                response_time=response_time,
                details={"active_workers": len(stats), "workers": list(stats.keys())},
                required=False
            )
        return HealthCheckResult(
            service="celery",
            healthy=False,
            response_time=response_time,
            details={"error": "No active Celery workers found"},
            required=False
        )

    except Exception as e:
        logger.warning(f"Celery health check failed: {e}")
        return HealthCheckResult(
            service="celery",
            healthy=False,
            response_time=time.perf_counter() - start_time,
            details={"error": str(e), "error_type": type(e).__name__},
            required=False
        )


async def get_health_status() -> Dict[str, Any]:
    """Get health status of all dependencies.

    The service is ``healthy`` when every dependency answers, ``degraded``
    when only optional ones (cache, workers) fail and ``unhealthy`` when the
    database does.
    """
    start_time = time.perf_counter()

    health_checks = await asyncio.gather(
        check_database_health(),
        check_redis_health(),
        check_celery_health()
    )

    results = [check.to_dict() for check in health_checks]

    if any(not check.healthy and check.required for check in health_checks):
        overall = "unhealthy"
    elif any(not check.healthy for check in health_checks):
        overall = "degraded"
    else:
        overall = "healthy"

    return {
        "status": overall,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "total_check_time": time.perf_counter() - start_time,
        "services": results,
        "summary": {
            "total_services": len(results),
            "healthy_services": sum(1 for r in results if r["healthy"]),
            "unhealthy_services": sum(1 for r in results if not r["healthy"])
        }
    }
