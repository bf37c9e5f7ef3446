"""
Weekly Rundown - Main Application Entry Point

FastAPI application with the report/query API and the background scheduler.
"""

import logging
import sys
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from config import settings
from .cache.redis_client import close_redis
from .database import init_database, close_database, get_database
from .scheduler.jobs import get_scheduler_manager
from .utils.background_tasks import active_task_count
from .web import routers

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.debug else logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    handlers=[
        logging.StreamHandler(sys.stdout)
    ]
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan handler for startup and shutdown."""
    logger.info(f"Starting {settings.app_name}...")

    try:
        if await init_database():
            logger.info("Database initialized")
        else:
            logger.warning("Database not configured or failed to initialize")
    except Exception as e:
        logger.warning(f"Database init failed: {e}")

    if settings.enable_scheduler:
        try:
            get_scheduler_manager().start()
        except Exception as e:
            logger.warning(f"Scheduler failed: {e}")
    else:
        logger.info("Scheduler disabled (ENABLE_SCHEDULER=false)")

    logger.info(f"{settings.app_name} started successfully!")

    yield

    logger.info("Shutting down...")

    try:
        get_scheduler_manager().stop()
    except Exception as e:
        logger.warning(f"Failed to stop scheduler during shutdown: {e}")

    try:
        await close_redis()
    except Exception as e:
        logger.warning(f"Failed to close Redis during shutdown: {e}")

    try:
        await close_database()
    except Exception as e:
        logger.warning(f"Failed to close database during shutdown: {e}")

    logger.info("Shutdown complete")


# Create FastAPI app
app = FastAPI(
    title=settings.app_name,
    description="Weekly Linear and GitHub activity reports delivered over Slack",
    version="1.0.0",
    lifespan=lifespan
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for router in routers:
    app.include_router(router)


@app.get("/")
async def root():
    """Root endpoint - health check."""
    return {
        "status": "healthy",
        "service": settings.app_name,
        "version": "1.0.0"
    }


@app.get("/health")
async def health_check():
    """Detailed health check endpoint."""
    db_health = {"status": "not_configured"}
    try:
        db_health = await get_database().health_check()
    except Exception as e:
        db_health = {"status": "error", "error": str(e)}

    return {
        "status": "healthy",
        "timestamp": datetime.now().isoformat(),
        "services": {
            "linear": bool(settings.linear_api_key),
            "slack": bool(settings.slack_bot_token),
            "github": bool(settings.github_token),
            "redis": bool(settings.redis_url),
            "database": db_health.get("status", "unknown"),
        },
        "background_tasks": active_task_count(),
    }


# Error handlers
@app.exception_handler(Exception)
async def global_exception_handler(request: Request, exc: Exception):
    """Global exception handler."""
    logger.error(f"Unhandled exception: {exc}", exc_info=True)
    return JSONResponse(
        status_code=500,
        content={"error": "Internal server error", "detail": str(exc)}
    )


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "rundown.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.debug
    )
