"""Health-check routes (liveness, readiness, metrics)."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor, TimeoutError

from fastapi import APIRouter
from fastapi.responses import Response
from prometheus_client import CONTENT_TYPE_LATEST

from problemfetch.core.config import get_settings, get_version
from problemfetch.core.metrics import generate_metrics
from problemfetch.core.redis import ping_redis
from problemfetch.schemas import CacheHealthResponse, HealthResponse

router = APIRouter(tags=["health"])

_version = get_version()

# Upper bound for the Redis readiness check.
_PING_TIMEOUT_S: float = 5.0


@router.get("/health", response_model=HealthResponse)
def health_check() -> HealthResponse:
    """Liveness probe: returns OK if the web process is running."""
    return HealthResponse(status="ok", version=_version)


@router.get(
    "/health/cache",
    response_model=CacheHealthResponse,
)
def cache_health_check() -> CacheHealthResponse:
    """Readiness probe: checks the problem-cache backing store.

    Only the ``redis`` backend depends on an external service.
    The ping runs in a thread with a hard timeout so the
    endpoint stays responsive when Redis hangs.
    """
    settings = get_settings()
    backend = (
        settings.PROBLEM_CACHE_BACKEND if settings.PROBLEM_CACHE_ENABLED else "none"
    )
    if backend == "none":
        return CacheHealthResponse(
            status="healthy",
            backend=backend,
            message="Problem cache disabled",
        )
    if backend != "redis":
        return CacheHealthResponse(
            status="healthy",
            backend=backend,
            message="Local problem cache",
        )

    try:
        with ThreadPoolExecutor(max_workers=1) as pool:
            alive = pool.submit(ping_redis).result(timeout=_PING_TIMEOUT_S)
    except TimeoutError:
        return CacheHealthResponse(
            status="degraded",
            backend=backend,
            message="Redis ping timed out; requests fall back to fetching",
        )
    except Exception as exc:
        return CacheHealthResponse(
            status="unhealthy",
            backend=backend,
            message=f"Error connecting to Redis: {exc}",
        )

    return CacheHealthResponse(
        status="healthy" if alive else "unhealthy",
        backend=backend,
        message="Redis reachable" if alive else "Redis did not answer PING",
    )


@router.get(
    "/metrics",
    response_class=Response,
    tags=["observability"],
)
def prometheus_metrics() -> Response:
    """Expose pipeline counters in Prometheus exposition format."""
    return Response(
        content=generate_metrics(),
        media_type=CONTENT_TYPE_LATEST,
    )
