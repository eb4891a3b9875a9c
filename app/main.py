"""
DevMatch — FastAPI Application Entry Point

Wires together:
- lifespan management (DB pool warm-up, optional Redis room broker, chat
  connection shutdown)
- CORS, request-timeout and structured-logging middleware
- handlers that render every ``DevMatchError`` as ``{"detail", "error"}``
- liveness and readiness probes
- in-flight request tracking so shutdown can drain HTTP traffic
"""

from __future__ import annotations

import asyncio
import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import FastAPI, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from sqlalchemy import text
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from app.config import get_settings
from app.database import async_session_factory, engine
from app.exceptions import AuthenticationError, DevMatchError, ServerError
from app.realtime.broker import LocalBroker, RedisBroker
from app.realtime.gateway import ChatRoomGateway
from app.repositories import open_repositories


def configure_logging(level: str) -> None:
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.processors.format_exc_info,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(level.upper())
        ),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


settings = get_settings()
configure_logging(settings.LOG_LEVEL)

logger: structlog.stdlib.BoundLogger = structlog.get_logger("devmatch")


# ---------------------------------------------------------------------------
# In-flight HTTP requests
# ---------------------------------------------------------------------------

class RequestTracker:
    """Counts in-flight HTTP requests so shutdown can wait for them."""

    def __init__(self, drain_timeout: float = 15.0) -> None:
        self.drain_timeout = drain_timeout
        self._active = 0
        self._lock = asyncio.Lock()

    @property
    def active(self) -> int:
        return self._active

    async def enter(self) -> None:
        async with self._lock:
            self._active += 1

    async def leave(self) -> None:
        async with self._lock:
            self._active -= 1

    async def drain(self) -> None:
        deadline = time.monotonic() + self.drain_timeout
        while self._active > 0:
            if time.monotonic() >= deadline:
                logger.warning("drain_timeout_exceeded", remaining_requests=self._active)
                return
            await asyncio.sleep(0.25)


request_tracker = RequestTracker()


# ---------------------------------------------------------------------------
# Redis-backed room fan-out
# ---------------------------------------------------------------------------

class RedisFanout:
    """Owns the Redis client and broker used when ``REDIS_URL`` is set."""

    def __init__(self) -> None:
        self.client = None
        self.broker: RedisBroker | None = None

    async def start(self, gateway: ChatRoomGateway) -> None:
        import redis.asyncio as aioredis

        cfg = get_settings()
        self.client = aioredis.from_url(
            cfg.REDIS_URL,
            decode_responses=True,
            socket_connect_timeout=5,
        )
        await self.client.ping()
        logger.info("redis_connected")

        self.broker = RedisBroker(self.client, cfg.REDIS_CHANNEL, gateway.deliver)
        await self.broker.start()
        gateway.use_broker(self.broker)

    async def stop(self, gateway: ChatRoomGateway) -> None:
        if self.broker is not None:
            await self.broker.stop()
            gateway.use_broker(LocalBroker(gateway.deliver))
            self.broker = None
        if self.client is not None:
            await self.client.aclose()
            self.client = None
            logger.info("redis_closed")


redis_fanout = RedisFanout()


# ---------------------------------------------------------------------------
# Lifespan
# ---------------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    cfg = get_settings()
    gateway: ChatRoomGateway = app.state.gateway

    logger.info("startup_begin", environment=cfg.ENVIRONMENT, log_level=cfg.LOG_LEVEL)

    # The engine is built at import time; a round trip fills the pool.
    async with engine.begin() as conn:
        await conn.execute(text("SELECT 1"))
    logger.info("database_pool_initialised")

    if cfg.redis_enabled:
        await redis_fanout.start(gateway)
    else:
        logger.info("room_broker_local", reason="REDIS_URL not configured")

    logger.info("startup_complete")

    yield

    logger.info("shutdown_begin")
    await request_tracker.drain()
    await gateway.close_all()
    await redis_fanout.stop(gateway)
    await engine.dispose()
    logger.info("shutdown_complete")


# ---------------------------------------------------------------------------
# Middleware
# ---------------------------------------------------------------------------

class TimeoutMiddleware(BaseHTTPMiddleware):
    """Answer 504 when a request runs past ``timeout_seconds``."""

    def __init__(self, app, timeout_seconds: float) -> None:
        super().__init__(app)
        self.timeout_seconds = timeout_seconds

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        try:
            return await asyncio.wait_for(call_next(request), timeout=self.timeout_seconds)
        except asyncio.TimeoutError:
            logger.warning(
                "request_timeout",
                method=request.method,
                path=request.url.path,
                timeout=self.timeout_seconds,
            )
            return JSONResponse(
                status_code=504,
                content={"detail": "Request timed out", "error": "timeout"},
            )


class StructuredLoggingMiddleware(BaseHTTPMiddleware):
    """One ``request_handled`` event per request, tracked for draining."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        started = time.perf_counter()
        await request_tracker.enter()
        try:
            response = await call_next(request)
        except Exception:
            logger.exception(
                "request_error",
                method=request.method,
                path=request.url.path,
                duration_ms=round((time.perf_counter() - started) * 1000, 2),
            )
            raise
        finally:
            await request_tracker.leave()

        logger.info(
            "request_handled",
            method=request.method,
            path=request.url.path,
            status=response.status_code,
            duration_ms=round((time.perf_counter() - started) * 1000, 2),
        )
        return response


# ---------------------------------------------------------------------------
# Application
# ---------------------------------------------------------------------------

app = FastAPI(
    title="DevMatch",
    description="Developer matchmaking with real-time chat for matched pairs",
    version="1.0.0",
    lifespan=lifespan,
    docs_url=None if settings.is_production else "/docs",
    redoc_url=None if settings.is_production else "/redoc",
)

app.state.gateway = ChatRoomGateway(open_repositories)

# Last added runs first: CORS, then timeout, then logging.
app.add_middleware(StructuredLoggingMiddleware)
app.add_middleware(TimeoutMiddleware, timeout_seconds=settings.REQUEST_TIMEOUT_SECONDS)
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.allowed_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(DevMatchError)
async def devmatch_error_handler(request: Request, exc: DevMatchError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.error("request_failed", path=request.url.path, error=exc.kind, detail=exc.message)
    headers = {"WWW-Authenticate": "Bearer"} if isinstance(exc, AuthenticationError) else None
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.message, "error": exc.kind},
        headers=headers,
    )


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request_unhandled_error", path=request.url.path)
    error = ServerError()
    return JSONResponse(
        status_code=error.status_code,
        content={"detail": error.message, "error": error.kind},
    )


@app.get("/health", tags=["health"])
async def health_liveness() -> dict:
    """Liveness: the process is up."""
    return {"status": "healthy"}


@app.get("/health/deep", tags=["health"])
async def health_deep() -> dict:
    """Readiness: database reachable, and Redis when configured."""
    report: dict = {
        "status": "healthy",
        "database": "connected",
        "redis": "not_configured",
        "chat_connections": app.state.gateway.session_count,
    }

    try:
        async with async_session_factory() as session:
            await session.execute(text("SELECT 1"))
    except Exception as exc:
        logger.error("health_db_failure", error=str(exc))
        report["database"] = "error"
        report["status"] = "degraded"

    if get_settings().redis_enabled:
        try:
            if redis_fanout.client is None:
                raise RuntimeError("Redis client not initialised")
            await redis_fanout.client.ping()
            if redis_fanout.broker is None or not redis_fanout.broker.listening:
                raise RuntimeError("Room broker listener is not running")
            report["redis"] = "connected"
        except Exception as exc:
            logger.error("health_redis_failure", error=str(exc))
            report["redis"] = "error"
            report["status"] = "degraded"

    return report


from app.api.router import router as api_router  # noqa: E402

app.include_router(api_router, prefix="/api/v1")
