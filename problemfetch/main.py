"""
FastAPI entry point.

The application exposes:
* ``GET /api/v1/problems/{problem_id}`` : extracted problem document
* ``GET /api/v1/health``                : liveness probe
* ``GET /api/v1/health/cache``          : problem-cache readiness probe
* ``GET /api/v1/metrics``               : Prometheus pipeline counters
"""

import logging
import uuid
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from problemfetch.api.routes import health, problems
from problemfetch.core.config import get_settings, get_version
from problemfetch.core.redis import close_redis_pool
from problemfetch.logging_config import request_id_var, setup_logging
from problemfetch.services.resolver import ProblemResolver

# ── Logging ─────────────────────────────────────────────────────────────────

settings = get_settings()
setup_logging(level=settings.LOG_LEVEL, json_format=not settings.DEBUG)
logger = logging.getLogger(__name__)


# ── Lifespan ────────────────────────────────────────────────────────────────


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Create the shared resolver on startup, close it on shutdown."""
    logger.info("Starting %s", settings.APP_NAME)
    resolver = ProblemResolver.from_settings()
    app.state.resolver = resolver
    try:
        yield
    finally:
        await resolver.aclose()
        close_redis_pool()
        logger.info("Shutting down %s", settings.APP_NAME)


# ── App factory ─────────────────────────────────────────────────────────────

app = FastAPI(
    title=settings.APP_NAME,
    description=(
        "Fetches problem pages with retries, extracts their "
        "structured sections and caches the result."
    ),
    version=get_version(),
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    docs_url=f"{settings.API_V1_STR}/docs",
    redoc_url=f"{settings.API_V1_STR}/redoc",
    root_path=settings.ROOT_PATH,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    """Tag every request (and its log lines) with an ``X-Request-ID``."""
    request_id = request.headers.get("X-Request-ID") or uuid.uuid4().hex
    token = request_id_var.set(request_id)
    try:
        response = await call_next(request)
    finally:
        request_id_var.reset(token)
    response.headers["X-Request-ID"] = request_id
    return response


# ── Routers ─────────────────────────────────────────────────────────────────

app.include_router(health.router, prefix=settings.API_V1_STR)
app.include_router(problems.router, prefix=settings.API_V1_STR)
