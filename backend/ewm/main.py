"""
Explore With Me API - Main Application Entry Point

Event sharing service:
- Users publish events; admins moderate them
- Participation requests with capacity-safe confirmation (optimistic locking)
- View counts from a separate stats server (see ewm.stats.main)
- Structured logging with request correlation
"""

from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from ewm.api.errors import register_exception_handlers
from ewm.api.middleware import RequestLoggingMiddleware
from ewm.api.router import api_router
from ewm.core.config import get_settings
from ewm.core.logging import get_logger, setup_logging
from ewm.core.metrics import metrics_endpoint
from ewm.db.session import engine

settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifecycle: startup and shutdown hooks."""
    setup_logging()
    logger = get_logger(__name__)

    logger.info(
        "application_starting",
        app=settings.APP_NAME,
        version=settings.APP_VERSION,
        environment=settings.ENVIRONMENT,
        stats_server=settings.STATS_SERVER_URL,
    )

    yield

    await engine.dispose()
    logger.info("application_shutdown")


app = FastAPI(
    title=settings.APP_NAME,
    version=settings.APP_VERSION,
    description="Event sharing API with capacity-safe participation requests",
    lifespan=lifespan,
    docs_url="/docs",
    redoc_url="/redoc",
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Restrict in production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Custom middleware
app.add_middleware(RequestLoggingMiddleware)

register_exception_handlers(app)

# Routes
app.include_router(api_router)


@app.get("/health", tags=["Health"])
async def health_check():
    """Health check endpoint for Docker and load balancers."""
    return {
        "status": "healthy",
        "version": settings.APP_VERSION,
        "environment": settings.ENVIRONMENT,
    }


@app.get("/metrics", include_in_schema=False)
def metrics():
    return metrics_endpoint()
