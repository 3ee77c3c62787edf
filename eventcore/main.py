"""
FastAPI application with database pool, Redis and dispatch queue lifecycle.
"""

import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request

from eventcore.config import settings
from eventcore.db.pool import db_pool
from eventcore.features.notifications.api.router import router as notifications_router
from eventcore.features.notifications.services.dispatch_queue import dispatch_queue
from eventcore.infrastructure.observability.logging import get_logger, setup_logging
from eventcore.routes import health
from eventcore.services.infrastructure.redis_client import fast_redis
from eventcore.services.providers.registry import close_providers

# Setup logging before creating the app
setup_logging(log_level=settings.LOG_LEVEL)
logger = get_logger(__name__)

SHUTDOWN_DRAIN_SECONDS = 15.0


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Handle application startup and shutdown with proper resource management."""
    logger.info("Application starting", environment=settings.environment, debug=settings.debug)

    startup_tasks = []

    try:
        logger.info("Initializing database pool")
        await db_pool.initialize()
        startup_tasks.append("database_pool")

        logger.info("Initializing Redis connection")
        await fast_redis.initialize()
        startup_tasks.append("redis")

        logger.info("All services initialized successfully", services=startup_tasks)

    except Exception as e:
        logger.error("Failed to initialize services", error=str(e), completed_tasks=startup_tasks)

        if "redis" in startup_tasks:
            try:
                await fast_redis.close()
            except Exception as cleanup_error:
                logger.error("Error cleaning up Redis", error=str(cleanup_error))

        if "database_pool" in startup_tasks:
            try:
                await db_pool.close()
            except Exception as cleanup_error:
                logger.error("Error cleaning up database pool", error=str(cleanup_error))

        raise

    yield

    logger.info("Application shutting down", pending_dispatches=dispatch_queue.pending)

    shutdown_errors = []

    # Queued notifications still need providers, Redis and the pool
    try:
        await dispatch_queue.drain(timeout=SHUTDOWN_DRAIN_SECONDS)
    except Exception as e:
        logger.error("Error draining dispatch queue", error=str(e))
        shutdown_errors.append(f"Dispatch queue: {e}")

    try:
        await close_providers()
    except Exception as e:
        logger.error("Error closing providers", error=str(e))
        shutdown_errors.append(f"Providers: {e}")

    try:
        logger.info("Closing Redis connection")
        await fast_redis.close()
    except Exception as e:
        logger.error("Error closing Redis", error=str(e))
        shutdown_errors.append(f"Redis: {e}")

    try:
        logger.info("Closing database pool")
        await db_pool.close()
    except Exception as e:
        logger.error("Error closing database pool", error=str(e))
        shutdown_errors.append(f"Database: {e}")

    if shutdown_errors:
        logger.warning("Some services had shutdown errors", errors=shutdown_errors)
    else:
        logger.info("All services closed successfully")


app = FastAPI(
    title="Events Core",
    description="Notification fan-out and reservation-count reconciliation",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(health.router)
app.include_router(notifications_router)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    """Log HTTP requests with timing."""
    start_time = time.time()
    response = await call_next(request)
    process_time = (time.time() - start_time) * 1000

    logger.info(
        "HTTP request completed",
        method=request.method,
        path=request.url.path,
        status_code=response.status_code,
        duration_ms=round(process_time, 2),
    )
    return response


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
