"""
FastAPI Application — Smart Water Dispenser Host

Run with:
    uvicorn dispenser.api.main:app

CORS: Configured via environment variables.
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from dispenser.config import settings
from .routes import router
from .schemas import PingResponse
from .services import get_dispenser_service, shutdown_dispenser_service


# Configure logging
logging.basicConfig(level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO))
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan events."""
    # Startup
    logger.info(f"🚀 Starting {settings.PROJECT_NAME}")
    logger.info(f"📍 Running in {settings.ENVIRONMENT} mode")
    logger.info(f"💾 Settings store: {settings.SETTINGS_STORE_PATH}")
    if get_dispenser_service not in app.dependency_overrides:
        get_dispenser_service()
    yield
    # Shutdown
    shutdown_dispenser_service()
    logger.info(f"👋 Shutting down {settings.PROJECT_NAME}")


# Application metadata
app = FastAPI(
    title=settings.PROJECT_NAME,
    description="Smart water dispenser simulation host",
    version="1.0.0",
    docs_url="/docs",
    redoc_url="/redoc",
    lifespan=lifespan,
)


app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT"],
    allow_headers=["Content-Type", "Authorization"],
)


app.include_router(router)


@app.get("/", include_in_schema=False)
async def root():
    """Root endpoint — points at docs."""
    return {
        "message": "Smart Water Dispenser API",
        "docs": "/docs",
        "status": "/dispenser/status",
    }


@app.get("/ping", response_model=PingResponse, tags=["Health"])
async def ping() -> PingResponse:
    """Lightweight heartbeat."""
    return PingResponse()
