"""
Stats Server - Application Entry Point

Run alongside the main service:
    uvicorn ewm.stats.main:app --port 9090
"""

from contextlib import asynccontextmanager
from fastapi import FastAPI

from ewm.core.config import get_settings
from ewm.core.logging import setup_logging, get_logger
from ewm.core.metrics import metrics_endpoint
from ewm.api.errors import register_exception_handlers
from ewm.api.middleware import RequestLoggingMiddleware
from ewm.stats.db import create_schema, stats_engine
from ewm.stats.routes import router

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()
    logger = get_logger(__name__)

    logger.info(
        "stats_server_starting",
        app=settings.STATS_SERVICE_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
    )
    await create_schema()

    yield

    await stats_engine.dispose()
    logger.info("stats_server_shutdown")


app = FastAPI(
    title=settings.STATS_SERVICE_NAME,
    version=settings.APP_VERSION,
    description="Endpoint hit log and view statistics",
    lifespan=lifespan,
)

app.add_middleware(RequestLoggingMiddleware)
register_exception_handlers(app)
app.include_router(router)


@app.get("/health", tags=["Health"])
async def health_check():
    return {"status": "healthy", "version": settings.APP_VERSION}


@app.get("/metrics", include_in_schema=False)
def metrics():
    return metrics_endpoint()
