"""Code Analytics — FastAPI Application Entry Point.

Engineering analytics across GitHub, Cursor and Claude Code.
"""

import os
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from code_analytics.api.dashboard_routes import router as dashboard_router
from code_analytics.api.identity_routes import router as identity_router
from code_analytics.api.metrics_routes import router as metrics_router
from code_analytics.core.logging import get_logger
from code_analytics.database import _mask_url, db_url, init_db, test_connection
from code_analytics.scheduler.jobs import start_scheduler, stop_scheduler

logger = get_logger("main")

VERSION = "1.0.0"

IS_SERVERLESS = bool(
    os.environ.get("VERCEL") or os.environ.get("AWS_LAMBDA_FUNCTION_NAME")
)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Startup and shutdown lifecycle."""
    logger.info("Code Analytics starting up...")
    logger.info(f"Environment: {'SERVERLESS' if IS_SERVERLESS else 'LOCAL'}")
    if test_connection():
        try:
            init_db()
        except Exception as e:
            logger.error(f"Table creation failed: {e}")
    else:
        logger.error("Database NOT connected, endpoints will fail")
    if not IS_SERVERLESS:
        start_scheduler()
    yield
    if not IS_SERVERLESS:
        stop_scheduler()
    logger.info("Code Analytics shut down")


app = FastAPI(
    title="Code Analytics",
    description="Pull GitHub, Cursor and Claude Code telemetry, normalize it, and serve team and AI-adoption dashboards.",
    version=VERSION,
    lifespan=lifespan,
)

# CORS
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routers
app.include_router(metrics_router)
app.include_router(dashboard_router)
app.include_router(identity_router)


@app.get("/", include_in_schema=False)
async def root():
    return {"service": "code-analytics", "version": VERSION, "docs": "/docs"}


@app.get("/health", tags=["System"])
async def health_check():
    """Health check endpoint."""
    return {
        "status": "healthy",
        "service": "code-analytics",
        "version": VERSION,
    }


@app.get("/debug/db", tags=["System"])
async def debug_db():
    """Debug endpoint: check database connectivity."""
    backend = "sqlite" if db_url.startswith("sqlite") else db_url.split(":", 1)[0]
    return {
        "connected": test_connection(),
        "backend": backend,
        "url": _mask_url(db_url),
        "environment": "serverless" if IS_SERVERLESS else "local",
    }
